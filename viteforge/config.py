"""viteforge configuration.

Typed settings for a scaffolding run.  Uses a Pydantic v2 model so values are
validated at construction time and can be serialised to/from JSON or read
from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from viteforge.composer.registry import DEFAULT_TEMPLATE_DIR
from viteforge.composer.writer import DEFAULT_GITIGNORE


_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global viteforge configuration.

    Created once by the CLI entry point (or a test) and passed to
    ``ScaffoldPipeline``.
    """

    template_dir: Path = Field(default=DEFAULT_TEMPLATE_DIR)
    git_init: bool = Field(default=True, description="Run `git init` in the new project")
    install: bool = Field(default=True, description="Install dependencies after generation")
    install_timeout: int = Field(default=600, ge=10, description="Install timeout in seconds")
    strict_overlay: bool = Field(
        default=False,
        description="Reject files supplied by more than one template source",
    )
    gitignore_entries: list[str] = Field(default_factory=lambda: list(DEFAULT_GITIGNORE))

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            VITEFORGE_TEMPLATE_DIR, VITEFORGE_NO_INSTALL, VITEFORGE_NO_GIT,
            VITEFORGE_STRICT, VITEFORGE_INSTALL_TIMEOUT.

        Raises:
            ValueError: A variable holds an unusable value (pydantic's
                ``ValidationError`` included).
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("VITEFORGE_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["VITEFORGE_TEMPLATE_DIR"])
        if _flag("VITEFORGE_NO_INSTALL"):
            kwargs["install"] = False
        if _flag("VITEFORGE_NO_GIT"):
            kwargs["git_init"] = False
        if _flag("VITEFORGE_STRICT"):
            kwargs["strict_overlay"] = True
        timeout = os.environ.get("VITEFORGE_INSTALL_TIMEOUT", "").strip()
        if timeout:
            try:
                kwargs["install_timeout"] = int(timeout)
            except ValueError:
                raise ValueError(
                    f"VITEFORGE_INSTALL_TIMEOUT must be a whole number of seconds, got {timeout!r}"
                ) from None
        return cls(**kwargs)


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY
