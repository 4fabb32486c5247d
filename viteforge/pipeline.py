"""viteforge scaffolding pipeline.

Runs one project generation end to end:

1. Check the selection against the registry (no files touched yet).
2. Plan the layout, resolve template sources, dry-run the config patches
   against the planned files, overlay them.
3. Synthesize and write ``package.json``/``.env``/``.gitignore``, apply
   config patches.
4. Initialise git and install dependencies.

Usage::

    create-vite-shadcn-app my-app
    create-vite-shadcn-app my-app --auth clerk --database postgres-prisma --yes
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from viteforge.composer import (
    ComposerError,
    FeatureSelection,
    FileTree,
    ManifestSynthesizer,
    ManifestWriter,
    OverlayEngine,
    ProjectLayout,
    Resolution,
    Synthesis,
    TemplateRegistry,
    default_registry,
    plan_layout,
    resolve,
)
from viteforge.config import Config
from viteforge.utils import (
    console,
    is_non_empty_dir,
    print_error,
    print_next_steps,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScaffoldError(Exception):
    """Raised when an external step (install) fails irrecoverably."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class ScaffoldResult:
    selection: FeatureSelection
    layout: ProjectLayout
    resolution: Resolution
    tree: FileTree
    synthesis: Synthesis
    written: list[Path] = field(default_factory=list)
    patched: list[Path] = field(default_factory=list)
    patch_warnings: list[str] = field(default_factory=list)
    git_initialized: bool = False
    installed: bool = False

    @property
    def warnings(self) -> list[str]:
        return [
            *self.resolution.warnings,
            *self.tree.warnings,
            *self.synthesis.warnings,
            *self.patch_warnings,
        ]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """Composes a project from a ``FeatureSelection`` and finishes it off.

    Attributes:
        config: Run configuration.
        registry: Template sources and manifest fragments.
    """

    def __init__(self, config: Config, registry: TemplateRegistry | None = None) -> None:
        self.config = config
        self.registry = registry or default_registry(config.template_dir)
        self.engine = OverlayEngine(self.registry.template_dir, strict=config.strict_overlay)
        self.synthesizer = ManifestSynthesizer(self.registry)
        self.writer = ManifestWriter()

    async def compose(self, selection: FeatureSelection, root_dir: str | Path) -> ScaffoldResult:
        """Run the composition core only: no git, no install.

        Raises:
            ConfigurationError: Before any file is written.
            SourceMissingError: A mandatory template subtree is absent.
            OverlayIOError: A write failed; the tree is left partially written.
        """
        self.registry.check_selection(selection)

        layout = plan_layout(selection, root_dir)
        resolution = resolve(selection, self.registry)
        plan = self.engine.plan(layout, resolution, selection)
        self.synthesizer.check_patches(
            selection,
            layout,
            lambda path: self.engine.planned_text(plan, path, selection),
        )

        tree = await self.engine.apply(layout, resolution, selection, plan=plan)
        synthesis = self.synthesizer.synthesize(selection, resolution.sources, layout)
        written = await self.writer.write(layout, synthesis, self.config.gitignore_entries)
        patches = await self.synthesizer.apply_patches(selection, layout)

        return ScaffoldResult(
            selection=selection,
            layout=layout,
            resolution=resolution,
            tree=tree,
            synthesis=synthesis,
            written=written,
            patched=patches.changed,
            patch_warnings=patches.warnings,
        )

    async def run(self, selection: FeatureSelection, root_dir: str | Path) -> ScaffoldResult:
        """Compose the project, then initialise git and install dependencies."""
        result = await self.compose(selection, root_dir)

        if self.config.git_init:
            result.git_initialized = await self._git_init(result.layout.root_dir)

        if self.config.install:
            await self._install(selection, result)
            result.installed = True

        return result

    async def _git_init(self, root: Path) -> bool:
        returncode, _, stderr = await run_command(["git", "init"], cwd=root)
        if returncode != 0:
            print_warning(f"Warning: Could not initialize git repository ({stderr})")
            return False
        return True

    async def _install(self, selection: FeatureSelection, result: ScaffoldResult) -> None:
        roots = [result.layout.frontend_dir]
        if result.synthesis.backend_manifest is not None and result.layout.backend_dir:
            roots.append(result.layout.backend_dir)

        command = selection.package_manager.install_command
        for root in roots:
            console.print(f"Installing dependencies in {root}...")
            returncode, _, stderr = await run_command(
                command,
                cwd=root,
                timeout=self.config.install_timeout,
                capture=False,
            )
            if returncode != 0:
                raise ScaffoldError(
                    "install",
                    f"`{' '.join(command)}` failed in {root} (exit {returncode}) {stderr}".strip(),
                )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def next_steps(result: ScaffoldResult, cwd: Path | None = None) -> list[str]:
    """Commands to show the user once generation finished."""
    cwd = (cwd or Path.cwd()).resolve()
    pm = result.selection.package_manager
    steps: list[str] = []
    root = result.layout.root_dir.resolve()
    if root != cwd:
        steps.append(f"cd {root}")
    if result.layout.is_split:
        steps.append(f"cd backend && {pm.run_script('db:push')} && {pm.run_script('dev')}")
        steps.append(f"cd frontend && {pm.run_script('dev')}")
    else:
        steps.append(pm.run_script("dev"))
    return steps


def print_report(result: ScaffoldResult) -> None:
    selection = result.selection
    print_summary_table(
        {
            "Project": selection.project_name,
            "Location": str(result.layout.root_dir),
            "Package manager": selection.package_manager.value,
            "Auth": selection.auth_provider.value,
            "Database": selection.database_provider.value,
            "Features": ", ".join(t.value for t in selection.ordered_toggles()) or "none",
            "Templates": ", ".join(result.resolution.source_ids),
            "Entry point": f"{result.tree.entry_point} ({result.tree.entry_source})",
            "Files": str(len(result.tree.files) + len(result.written)),
        },
        title="Project created",
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``create-vite-shadcn-app``."""
    import argparse

    from viteforge.prompts import ask_directory, collect_selection, confirm_non_empty

    parser = argparse.ArgumentParser(
        prog="create-vite-shadcn-app",
        description="Scaffold a new Vite + Tailwind + shadcn/ui application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-vite-shadcn-app my-app\n"
            "  create-vite-shadcn-app my-app --auth clerk --database postgres-prisma\n"
            "  create-vite-shadcn-app my-app --features router,zustand --yes --no-install\n"
        ),
    )
    parser.add_argument("dir", nargs="?", default=None, help="Directory to create the project in")
    parser.add_argument("--name", default=None, help="Project name (default: directory name)")
    parser.add_argument("--package-manager", default=None, help="npm, pnpm or yarn")
    parser.add_argument("--auth", default=None, help="Auth provider: none or clerk")
    parser.add_argument("--database", default=None, help="Database provider: none or postgres-prisma")
    parser.add_argument(
        "--features",
        default=None,
        help="Comma-separated features (router,zustand,darkMode,examples,linting,containerQueries) or 'none'",
    )
    parser.add_argument("--yes", "-y", action="store_true", help="Use defaults instead of prompting")
    parser.add_argument("--no-install", action="store_true", help="Skip dependency installation")
    parser.add_argument("--no-git", action="store_true", help="Skip git initialisation")
    parser.add_argument("--strict", action="store_true", help="Fail on files supplied by two templates")
    parser.add_argument("--template-dir", default=None, help="Use templates from this directory")

    args = parser.parse_args(argv)
    interactive = not args.yes

    try:
        config = Config.from_env()
    except ValueError as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(1)
    overrides: dict = {}
    if args.no_install:
        overrides["install"] = False
    if args.no_git:
        overrides["git_init"] = False
    if args.strict:
        overrides["strict_overlay"] = True
    if args.template_dir:
        overrides["template_dir"] = Path(args.template_dir)
    if overrides:
        config = config.model_copy(update=overrides)

    target = args.dir
    if target is None:
        target = ask_directory() if interactive else "."
    root_dir = Path(target).resolve()

    if is_non_empty_dir(root_dir) and (not interactive or not confirm_non_empty(root_dir)):
        print_error(f"Directory {root_dir} is not empty. Aborting.")
        sys.exit(1)

    try:
        selection = collect_selection(
            root_dir,
            name=args.name,
            package_manager=args.package_manager,
            auth=args.auth,
            database=args.database,
            features=args.features,
            interactive=interactive,
        )
    except (ValidationError, ValueError) as exc:
        print_error(f"Invalid selection: {exc}")
        sys.exit(1)

    pipeline = ScaffoldPipeline(config)
    try:
        console.print("Creating your project...")
        result = asyncio.run(pipeline.run(selection, root_dir))
    except (ComposerError, ScaffoldError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        print_error(f"Aborted. {root_dir} may be partially written.")
        sys.exit(1)

    print_report(result)
    print_success("Project created successfully!")
    print_next_steps(next_steps(result))


if __name__ == "__main__":
    main()
