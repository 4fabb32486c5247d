"""Manifest synthesis: ``package.json`` contents, env file text and config patches.

Manifests are assembled from the registry's ``ManifestFragment`` entries
rather than copied from a static file.  Fragments are applied in tier order
(base, toggles, auth, database, integration), so a colliding key always
resolves to the same fragment and repeated runs are byte-identical.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from viteforge.utils import print_warning, write_text

from .errors import ConfigurationError
from .models import (
    ConfigPatch,
    FeatureSelection,
    LayoutRole,
    ManifestFragment,
    PackageManifest,
    ProjectLayout,
    TemplateSource,
)
from .registry import TemplateRegistry


@dataclass(frozen=True)
class Collision:
    section: str
    key: str
    previous: str
    new: str
    fragment_id: str

    @property
    def message(self) -> str:
        return (
            f"{self.section}.{self.key} {self.previous!r} overridden by "
            f"{self.new!r} from '{self.fragment_id}'"
        )


@dataclass
class Synthesis:
    manifest: PackageManifest
    env_text: str
    backend_manifest: Optional[PackageManifest] = None
    collisions: list[Collision] = field(default_factory=list)
    fragment_ids: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [c.message for c in self.collisions]


@dataclass
class PatchResult:
    """Outcome of ``apply_patches``."""

    changed: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ManifestSynthesizer:
    """Builds manifests and env text from the fragments that apply to a selection."""

    def __init__(self, registry: TemplateRegistry) -> None:
        self.registry = registry

    def synthesize(
        self,
        selection: FeatureSelection,
        sources: Sequence[TemplateSource] = (),
        layout: ProjectLayout | None = None,
    ) -> Synthesis:
        """Merge every applicable fragment into the project's manifests.

        Args:
            selection: The run's feature selection.
            sources: Resolved template sources.  Fragments keyed to a
                template source (``auth:*``, ``database:*``, ...) only apply
                when that source was resolved.
            layout: Project layout.  Backend fragments are merged into the
                frontend manifest when the layout has no backend root.
        """
        fragments = self._applicable(selection, sources)
        split = layout.is_split if layout is not None else selection.has_database

        manifest = PackageManifest(name=selection.project_name)
        backend: Optional[PackageManifest] = None
        collisions: list[Collision] = []

        for fragment in fragments:
            target = manifest
            if fragment.role is LayoutRole.BACKEND and split:
                if backend is None:
                    backend = PackageManifest(
                        name=f"{selection.project_name}-backend",
                        main="server.js",
                    )
                target = backend
            collisions.extend(_merge(target, fragment))

        for c in collisions:
            print_warning(f"Warning: {c.message}")

        return Synthesis(
            manifest=manifest,
            env_text=render_env(fragments),
            backend_manifest=backend,
            collisions=collisions,
            fragment_ids=[f.id for f in fragments],
        )

    def _applicable(
        self, selection: FeatureSelection, sources: Sequence[TemplateSource]
    ) -> list[ManifestFragment]:
        fragments = self.registry.fragments_for(selection)
        if not sources:
            return fragments
        source_ids = {s.id for s in sources}
        registered = {s.id for s in self.registry.sources}
        return [f for f in fragments if f.id not in registered or f.id in source_ids]

    def check_patches(
        self,
        selection: FeatureSelection,
        layout: ProjectLayout,
        planned_text: Callable[[Path], Optional[str]],
    ) -> None:
        """Dry-run every applicable patch before anything is written.

        *planned_text* returns the text a target will have once the overlay
        has run, or ``None`` if the overlay does not produce it.  Targets
        that neither the overlay nor the existing tree provide are left to
        ``apply_patches`` to report.

        Raises:
            ConfigurationError: A patch anchor is missing from its target.
        """
        pending: dict[Path, Optional[str]] = {}
        for fragment in self.registry.fragments_for(selection):
            for patch in fragment.patches:
                path = layout.frontend_dir / patch.target
                if path not in pending:
                    text = planned_text(path)
                    if text is None and path.is_file():
                        text = path.read_text(encoding="utf-8")
                    pending[path] = text
                if pending[path] is not None:
                    pending[path] = apply_config_patch(pending[path], patch)

    async def apply_patches(
        self, selection: FeatureSelection, layout: ProjectLayout
    ) -> PatchResult:
        """Apply every applicable fragment's config patches under the frontend root.

        A missing target file is reported as a warning and skipped.
        """
        result = PatchResult()
        for fragment in self.registry.fragments_for(selection):
            for patch in fragment.patches:
                path = layout.frontend_dir / patch.target
                if not path.is_file():
                    message = f"Could not find {patch.target} to apply '{fragment.id}' patch"
                    result.warnings.append(message)
                    print_warning(f"Warning: {message}")
                    continue
                original = await asyncio.to_thread(path.read_text, encoding="utf-8")
                updated = apply_config_patch(original, patch)
                if updated != original:
                    await asyncio.to_thread(write_text, path, updated)
                    if path not in result.changed:
                        result.changed.append(path)
        return result


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _merge(target: PackageManifest, fragment: ManifestFragment) -> list[Collision]:
    collisions: list[Collision] = []
    sections = (
        ("dependencies", target.dependencies, fragment.dependencies),
        ("devDependencies", target.dev_dependencies, fragment.dev_dependencies),
        ("scripts", target.scripts, fragment.scripts),
    )
    for section, existing, incoming in sections:
        for key, value in incoming.items():
            previous = existing.get(key)
            if previous is not None and previous != value:
                collisions.append(Collision(section, key, previous, value, fragment.id))
            existing[key] = value
    return collisions


def render_env(fragments: Sequence[ManifestFragment]) -> str:
    """Concatenate the env blocks of *fragments*, separated by a blank line.

    Each block is a ``# <label>`` heading followed by an optional
    ``# <comment>`` line and a ``KEY=default`` line per variable.
    """
    blocks: list[str] = []
    for fragment in fragments:
        if not fragment.env_vars:
            continue
        lines = [f"# {fragment.label}"]
        for var in fragment.env_vars:
            if var.comment:
                lines.append(f"# {var.comment}")
            lines.append(f"{var.key}={var.default}")
        blocks.append("\n".join(lines))
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def apply_config_patch(text: str, patch: ConfigPatch) -> str:
    """Insert ``patch.text`` right after ``patch.anchor`` in *text*.

    Idempotent: if ``patch.marker`` already occurs in *text* it is returned
    unchanged.

    Raises:
        ConfigurationError: The anchor does not occur in *text*.
    """
    if patch.marker in text:
        return text
    index = text.find(patch.anchor)
    if index < 0:
        raise ConfigurationError(
            f"Cannot patch {patch.target}: anchor {patch.anchor!r} not found"
        )
    cut = index + len(patch.anchor)
    return text[:cut] + patch.text + text[cut:]
