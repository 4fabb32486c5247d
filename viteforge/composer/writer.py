"""Writes synthesized manifests, env files and ``.gitignore`` to disk."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence

from viteforge.utils import write_text

from .errors import OverlayIOError
from .manifest import Synthesis
from .models import ProjectLayout


DEFAULT_GITIGNORE: tuple[str, ...] = ("node_modules", ".DS_Store", "dist", ".env", "*.local")


class ManifestWriter:
    """Serialises a ``Synthesis`` into the generated project."""

    async def write(
        self,
        layout: ProjectLayout,
        synthesis: Synthesis,
        gitignore_entries: Sequence[str] = DEFAULT_GITIGNORE,
    ) -> list[Path]:
        """Write ``package.json`` (and ``backend/package.json``), ``.env`` and ``.gitignore``.

        The env file is written next to every manifest so both the Vite dev
        server and the API server pick it up.

        Returns:
            Written paths, in write order.
        """
        outputs: list[tuple[str, Path, str]] = [
            ("manifest", layout.frontend_dir / "package.json", synthesis.manifest.to_json()),
        ]
        roots = [layout.frontend_dir]
        if synthesis.backend_manifest is not None and layout.backend_dir is not None:
            outputs.append(
                (
                    "manifest",
                    layout.backend_dir / "package.json",
                    synthesis.backend_manifest.to_json(),
                )
            )
            roots.append(layout.backend_dir)

        if synthesis.env_text:
            outputs.extend(("env", root / ".env", synthesis.env_text) for root in roots)

        if gitignore_entries:
            outputs.append(
                ("gitignore", layout.root_dir / ".gitignore", "\n".join(gitignore_entries) + "\n")
            )

        written: list[Path] = []
        for label, path, content in outputs:
            try:
                written.append(await asyncio.to_thread(write_text, path, content))
            except OSError as exc:
                raise OverlayIOError(label, path, str(exc)) from exc
        return written
