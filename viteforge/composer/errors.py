"""Exception hierarchy for the template composition engine."""

from __future__ import annotations

from pathlib import Path


class ComposerError(Exception):
    """Base class for every composition failure."""


class ConfigurationError(ComposerError):
    """Raised when a selection or registry combination cannot be composed.

    Always raised before any file is written.
    """


class SourceMissingError(ComposerError):
    """Raised when a mandatory template subtree or file is absent on disk."""

    def __init__(self, source_id: str, path: str | Path, message: str = "") -> None:
        self.source_id = source_id
        self.path = Path(path)
        super().__init__(
            message or f"Template source '{source_id}' is missing: {self.path}"
        )


class OverlayIOError(ComposerError):
    """Raised when copying or rendering a template file fails.

    The destination tree is left partially written.
    """

    def __init__(self, source_id: str, path: str | Path, reason: str) -> None:
        self.source_id = source_id
        self.path = Path(path)
        self.reason = reason
        super().__init__(
            f"Failed to write {self.path} from template source '{source_id}': {reason}"
        )
