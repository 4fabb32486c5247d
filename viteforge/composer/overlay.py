"""File overlay engine.

Applies template sources onto the destination tree in resolution order.
Later sources overwrite earlier ones file by file, except for the logical
entry point (``src/App.jsx``), which is written exactly once at the end from
the source chosen by the resolver's variant.

Planning (reading the template tree, mapping destinations, detecting
collisions) happens entirely before the first write, so configuration
errors never leave a half-written project behind.
"""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Optional

from jinja2 import TemplateError

from viteforge.utils import print_warning

from .errors import ConfigurationError, OverlayIOError, SourceMissingError
from .models import (
    FeatureSelection,
    FileTree,
    LayoutRole,
    ProjectLayout,
    Resolution,
    TemplateSource,
    Tier,
)
from .renderer import TEMPLATE_SUFFIX, TemplateRenderer, build_context, strip_template_suffix


ENTRY_POINT = "src/App.jsx"

# Sources that may supply the entry point, highest precedence first.
_ENTRY_CHAIN = (Tier.INTEGRATION, Tier.AUTH, Tier.BASE)


@dataclass
class CopyOp:
    """One file to materialise."""

    source_id: str
    template_path: Path
    template_key: str
    dest: Path
    render: bool


@dataclass
class OverlayPlan:
    layout: ProjectLayout
    ops: list[CopyOp] = field(default_factory=list)
    entry: Optional[CopyOp] = None
    owners: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def op_for(self, dest: Path) -> Optional[CopyOp]:
        """The operation whose output ends up at *dest*, if any."""
        if self.entry is not None and self.entry.dest == dest:
            return self.entry
        for op in reversed(self.ops):
            if op.dest == dest:
                return op
        return None


class OverlayEngine:
    """Materialises resolved template sources into a project tree.

    Args:
        template_dir: Directory holding every source root.
        renderer: Jinja2 renderer for ``.j2`` files.  Defaults to one rooted
            at *template_dir*.
        strict: Reject any destination path written by two different
            sources (entry point excepted) instead of letting the later
            source win.
    """

    def __init__(
        self,
        template_dir: str | Path,
        renderer: TemplateRenderer | None = None,
        strict: bool = False,
    ) -> None:
        self.template_dir = Path(template_dir)
        self.renderer = renderer or TemplateRenderer(self.template_dir)
        self.strict = strict

    # -- Planning ----------------------------------------------------------

    def plan(
        self,
        layout: ProjectLayout,
        resolution: Resolution,
        selection: FeatureSelection,
    ) -> OverlayPlan:
        """Build the ordered copy plan without writing anything.

        Raises:
            SourceMissingError: A source root, or every entry point, is missing.
            ConfigurationError: A strict-mode collision, or a backend mount
                on a single-root layout.
        """
        plan = OverlayPlan(layout=layout)
        candidates: dict[str, CopyOp] = {}

        for source in resolution.sources:
            root = self.template_dir / source.root
            if not root.is_dir():
                raise SourceMissingError(source.id, root)

            for name in source.optional_files:
                if not (root / name).exists():
                    self._warn(plan, f"Could not find {name} in template '{source.id}'")

            for path in sorted(p for p in root.rglob("*") if p.is_file()):
                rel = path.relative_to(root).as_posix()
                out_rel = strip_template_suffix(rel)
                if self._excluded(source, out_rel, selection):
                    continue

                op = CopyOp(
                    source_id=source.id,
                    template_path=path,
                    template_key=f"{source.root}/{rel}",
                    dest=self._destination(source, out_rel, layout),
                    render=rel.endswith(TEMPLATE_SUFFIX),
                )
                if out_rel == ENTRY_POINT:
                    candidates[source.id] = op
                    continue

                key = self._relative(op.dest, layout)
                previous = plan.owners.get(key)
                if (
                    self.strict
                    and previous is not None
                    and previous != source.id
                    and out_rel not in source.overrides
                ):
                    raise ConfigurationError(
                        f"{key} is supplied by both '{previous}' and '{source.id}'"
                    )
                # Re-inserted so the map follows the order of final writes.
                plan.owners.pop(key, None)
                plan.owners[key] = source.id
                plan.ops.append(op)

        plan.entry = self._select_entry(resolution, candidates, plan)
        return plan

    def _select_entry(
        self,
        resolution: Resolution,
        candidates: dict[str, CopyOp],
        plan: OverlayPlan,
    ) -> CopyOp:
        chain = [
            s for tier in _ENTRY_CHAIN for s in resolution.sources if s.tier is tier
        ]
        ids = [s.id for s in chain]
        start = ids.index(resolution.entry_source) if resolution.entry_source in ids else 0

        for source_id in ids[start:]:
            if source_id in candidates:
                if source_id != resolution.entry_source:
                    self._warn(
                        plan,
                        f"Template '{resolution.entry_source}' has no {ENTRY_POINT}; "
                        f"using the one from '{source_id}'",
                    )
                return candidates[source_id]

        raise SourceMissingError(
            resolution.entry_source,
            self.template_dir / ENTRY_POINT,
            f"No template source supplies the entry point {ENTRY_POINT}",
        )

    # -- Applying ----------------------------------------------------------

    async def apply(
        self,
        layout: ProjectLayout,
        resolution: Resolution,
        selection: FeatureSelection,
        plan: OverlayPlan | None = None,
    ) -> FileTree:
        """Plan, then write every file in order, then the entry point.

        Copies are strictly sequential: source N is fully applied before
        source N+1 begins.  Existing unrelated files are left alone.  A
        *plan* from an earlier ``plan()`` call is used as is.

        Raises:
            OverlayIOError: A copy, render or write failed.  Files written
                before the failure stay on disk.
        """
        if plan is None:
            plan = self.plan(layout, resolution, selection)
        context = build_context(selection, layout)

        for op in plan.ops:
            await asyncio.to_thread(self._materialize, op, context)
        await asyncio.to_thread(self._materialize, plan.entry, context)

        entry_key = self._relative(plan.entry.dest, layout)
        files = dict(plan.owners)
        files[entry_key] = plan.entry.source_id
        return FileTree(
            root_dir=layout.root_dir,
            files=files,
            entry_point=entry_key,
            entry_source=plan.entry.source_id,
            warnings=list(plan.warnings),
        )

    def planned_text(
        self, plan: OverlayPlan, dest: Path, selection: FeatureSelection
    ) -> Optional[str]:
        """Text *plan* would write to *dest*, without writing it.

        Returns ``None`` when nothing in the plan produces *dest*.

        Raises:
            OverlayIOError: The template cannot be read or rendered.
        """
        op = plan.op_for(dest)
        if op is None:
            return None
        try:
            if op.render:
                return self.renderer.render(op.template_key, build_context(selection, plan.layout))
            return op.template_path.read_text(encoding="utf-8")
        except (OSError, TemplateError) as exc:
            raise OverlayIOError(op.source_id, op.dest, str(exc)) from exc

    def _materialize(self, op: CopyOp, context: dict[str, Any]) -> None:
        try:
            op.dest.parent.mkdir(parents=True, exist_ok=True)
            if op.render:
                content = self.renderer.render(op.template_key, context)
                op.dest.write_text(content, encoding="utf-8")
            else:
                shutil.copyfile(op.template_path, op.dest)
        except (OSError, TemplateError) as exc:
            raise OverlayIOError(op.source_id, op.dest, str(exc)) from exc

    # -- Helpers -----------------------------------------------------------

    @staticmethod
    def _excluded(
        source: TemplateSource, rel: str, selection: FeatureSelection
    ) -> bool:
        return any(
            fnmatch(rel, rule.pattern) and not selection.has(rule.unless)
            for rule in source.excludes
        )

    @staticmethod
    def _destination(source: TemplateSource, rel: str, layout: ProjectLayout) -> Path:
        top, _, rest = rel.partition("/")
        role = source.role_for(top)
        if role is LayoutRole.FRONTEND or not rest:
            return layout.frontend_dir / rel
        return layout.dir_for(role) / rest

    @staticmethod
    def _relative(dest: Path, layout: ProjectLayout) -> str:
        return dest.relative_to(layout.root_dir).as_posix()

    @staticmethod
    def _warn(plan: OverlayPlan, message: str) -> None:
        plan.warnings.append(message)
        print_warning(f"Warning: {message}")
