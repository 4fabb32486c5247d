"""Tests for the file overlay engine (viteforge.composer.overlay).

Covers:
- Later-source-wins overwrite and the entry-point exception
- Source-to-root mapping for split layouts
- Exclude rules and ``.j2`` rendering
- Determinism across runs
- Missing sources, missing optional config files, write failures
- Strict collision detection before any write
"""

from __future__ import annotations

from pathlib import Path

import pytest

from viteforge.composer import (
    ConfigurationError,
    OverlayEngine,
    OverlayIOError,
    SourceMissingError,
    TemplateRegistry,
    TemplateSource,
    Tier,
    plan_layout,
    resolve,
)
from viteforge.composer.models import AuthProvider


async def _apply(registry, selection, out_dir, strict=False):
    layout = plan_layout(selection, out_dir)
    resolution = resolve(selection, registry)
    engine = OverlayEngine(registry.template_dir, strict=strict)
    return await engine.apply(layout, resolution, selection)


class TestBaseOverlay:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_copies_base_into_root(self, registry, make_selection, out_dir: Path):
        tree = await _apply(registry, make_selection(), out_dir)
        assert (out_dir / "src" / "main.jsx").read_text() == "import App from './App';\n"
        assert (out_dir / "src" / "pages" / "Home.jsx").exists()
        assert tree.files["src/main.jsx"] == "base"
        assert tree.entry_point == "src/App.jsx"
        assert tree.entry_source == "base"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_renders_j2_and_strips_suffix(self, registry, make_selection, out_dir: Path):
        await _apply(registry, make_selection(project_name="shop"), out_dir)
        assert (out_dir / "index.html").read_text() == "<title>shop</title>\n"
        assert (out_dir / "src" / "App.jsx").read_text() == "// base entry for shop\n"
        assert not (out_dir / "index.html.j2").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exclude_rules_follow_toggles(self, registry, make_selection, out_dir: Path):
        tree = await _apply(registry, make_selection(toggles=[]), out_dir)
        assert not (out_dir / "src" / "store" / "counter.js").exists()
        assert not (out_dir / "src" / "pages" / "Dashboard.jsx").exists()
        assert not (out_dir / "eslint.config.js").exists()
        assert "src/store/counter.js" not in tree.files

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_excluded_files_included_when_toggled(
        self, registry, make_selection, out_dir: Path
    ):
        selection = make_selection(toggles=["router", "zustand", "linting"])
        await _apply(registry, selection, out_dir)
        assert (out_dir / "src" / "store" / "counter.js").exists()
        assert (out_dir / "src" / "pages" / "Dashboard.jsx").exists()
        assert (out_dir / "eslint.config.js").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keeps_unrelated_existing_files(self, registry, make_selection, out_dir: Path):
        out_dir.mkdir(parents=True)
        (out_dir / "NOTES.md").write_text("keep me")
        await _apply(registry, make_selection(), out_dir)
        assert (out_dir / "NOTES.md").read_text() == "keep me"


class TestLayeredOverlay:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_auth_overwrites_base(self, registry, make_selection, out_dir: Path):
        tree = await _apply(registry, make_selection(auth_provider="clerk"), out_dir)
        assert (out_dir / "src" / "pages" / "Dashboard.jsx").read_text() == "dashboard auth\n"
        assert (out_dir / "src" / "App.jsx").read_text() == "// auth entry\n"
        assert tree.files["src/pages/Dashboard.jsx"] == "auth:clerk"
        assert tree.entry_source == "auth:clerk"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_stack_split_layout(self, registry, full_stack_selection, out_dir: Path):
        tree = await _apply(registry, full_stack_selection, out_dir)
        frontend = out_dir / "frontend"
        assert (frontend / "src" / "App.jsx").read_text() == "// integration entry\n"
        assert (frontend / "src" / "pages" / "Dashboard.jsx").read_text() == (
            "dashboard integration\n"
        )
        assert (frontend / "src" / "lib" / "api.js").exists()
        assert (frontend / "index.html").exists()
        assert (out_dir / "backend" / "server.js").read_text() == "express server\n"
        assert (out_dir / "backend" / "prisma" / "schema.prisma").exists()
        assert not (frontend / "backend").exists()
        assert tree.files["backend/server.js"] == "database:postgres-prisma"
        assert tree.entry_point == "frontend/src/App.jsx"
        assert tree.entry_source == "integration:clerk+postgres-prisma"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_database_entry_point_is_discarded(
        self, registry, make_selection, out_dir: Path
    ):
        selection = make_selection(database_provider="postgres-prisma")
        tree = await _apply(registry, selection, out_dir)
        assert (out_dir / "frontend" / "src" / "App.jsx").read_text() == (
            "// base entry for demo\n"
        )
        assert tree.entry_source == "base"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_integration_uses_auth_entry(
        self, registry_without_integration, full_stack_selection, out_dir: Path
    ):
        tree = await _apply(registry_without_integration, full_stack_selection, out_dir)
        assert (out_dir / "frontend" / "src" / "App.jsx").read_text() == "// auth entry\n"
        assert tree.entry_source == "auth:clerk"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_entry_falls_back_when_winner_lacks_file(
        self, registry, full_stack_selection, template_dir: Path, out_dir: Path
    ):
        (template_dir / "integrations" / "clerk-postgres" / "src" / "App.jsx").unlink()
        tree = await _apply(registry, full_stack_selection, out_dir)
        assert (out_dir / "frontend" / "src" / "App.jsx").read_text() == "// auth entry\n"
        assert tree.entry_source == "auth:clerk"
        assert any("has no src/App.jsx" in w for w in tree.warnings)


class TestDeterminism:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_two_runs_produce_identical_trees(
        self, registry, full_stack_selection, tmp_path: Path, tree_snapshot
    ):
        first = await _apply(registry, full_stack_selection, tmp_path / "a")
        second = await _apply(registry, full_stack_selection, tmp_path / "b")
        assert tree_snapshot(tmp_path / "a") == tree_snapshot(tmp_path / "b")
        assert list(first.files.items()) == list(second.files.items())

    @pytest.mark.unit
    def test_plan_is_ordered_by_source(self, registry, full_stack_selection, out_dir: Path):
        layout = plan_layout(full_stack_selection, out_dir)
        resolution = resolve(full_stack_selection, registry)
        plan = OverlayEngine(registry.template_dir).plan(layout, resolution, full_stack_selection)
        order = [op.source_id for op in plan.ops]
        assert order == sorted(order, key=resolution.source_ids.index)
        assert not out_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_files_follow_final_write_order(
        self, registry, full_stack_selection, out_dir: Path
    ):
        tree = await _apply(registry, full_stack_selection, out_dir)
        keys = list(tree.files)
        assert tree.files["frontend/src/pages/Dashboard.jsx"] == "integration:clerk+postgres-prisma"
        assert keys.index("frontend/src/lib/api.js") < keys.index("frontend/src/pages/Dashboard.jsx")
        assert keys[-1] == "frontend/src/App.jsx"


class TestErrors:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_base_is_fatal(self, registry, make_selection, template_dir, out_dir):
        import shutil

        shutil.rmtree(template_dir / "base")
        with pytest.raises(SourceMissingError) as exc_info:
            await _apply(registry, make_selection(), out_dir)
        assert exc_info.value.source_id == "base"
        assert not out_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_optional_config_warns(
        self, registry, make_selection, template_dir, out_dir
    ):
        (template_dir / "base" / "vite.config.js").unlink()
        tree = await _apply(registry, make_selection(), out_dir)
        assert any("vite.config.js" in w for w in tree.warnings)
        assert (out_dir / "src" / "main.jsx").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_carries_context(self, registry, make_selection, out_dir):
        out_dir.parent.mkdir(parents=True)
        out_dir.write_text("not a directory")
        with pytest.raises(OverlayIOError) as exc_info:
            await _apply(registry, make_selection(), out_dir)
        assert exc_info.value.source_id == "base"
        assert exc_info.value.path == out_dir / "index.html"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_render_failure_is_overlay_error(
        self, registry, make_selection, template_dir, out_dir
    ):
        (template_dir / "base" / "src" / "App.jsx.j2").write_text("{{ missing_variable }}\n")
        with pytest.raises(OverlayIOError) as exc_info:
            await _apply(registry, make_selection(), out_dir)
        assert exc_info.value.source_id == "base"


class TestStrictMode:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_declared_overrides_allowed(self, registry, full_stack_selection, out_dir):
        tree = await _apply(registry, full_stack_selection, out_dir, strict=True)
        assert tree.files["frontend/src/pages/Dashboard.jsx"] == (
            "integration:clerk+postgres-prisma"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_undeclared_collision_rejected_before_writing(
        self, template_dir, make_selection, out_dir
    ):
        registry = TemplateRegistry(template_dir)
        registry.register_source(TemplateSource(id="base", root="base", tier=Tier.BASE))
        registry.register_source(
            TemplateSource(
                id="auth:clerk",
                root="auth/clerk",
                tier=Tier.AUTH,
                applies_when=lambda s: s.auth_provider is AuthProvider.CLERK,
            )
        )
        with pytest.raises(ConfigurationError, match="Dashboard.jsx"):
            await _apply(registry, make_selection(auth_provider="clerk"), out_dir, strict=True)
        assert not out_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_mode_last_writer_wins(self, template_dir, make_selection, out_dir):
        registry = TemplateRegistry(template_dir)
        registry.register_source(TemplateSource(id="base", root="base", tier=Tier.BASE))
        registry.register_source(
            TemplateSource(
                id="auth:clerk",
                root="auth/clerk",
                tier=Tier.AUTH,
                applies_when=lambda s: s.auth_provider is AuthProvider.CLERK,
            )
        )
        await _apply(registry, make_selection(auth_provider="clerk"), out_dir)
        assert (out_dir / "src" / "pages" / "Dashboard.jsx").read_text() == "dashboard auth\n"


class TestPlannedText:
    @pytest.mark.unit
    def test_previews_copied_and_rendered_files(self, registry, make_selection, out_dir: Path):
        selection = make_selection(project_name="shop")
        layout = plan_layout(selection, out_dir)
        engine = OverlayEngine(registry.template_dir)
        plan = engine.plan(layout, resolve(selection, registry), selection)

        assert engine.planned_text(plan, out_dir / "index.html", selection) == (
            "<title>shop</title>\n"
        )
        assert engine.planned_text(plan, out_dir / "src" / "App.jsx", selection) == (
            "// base entry for shop\n"
        )
        assert engine.planned_text(plan, out_dir / "missing.js", selection) is None
        assert not out_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_apply_reuses_given_plan(self, registry, make_selection, out_dir: Path):
        selection = make_selection()
        layout = plan_layout(selection, out_dir)
        resolution = resolve(selection, registry)
        engine = OverlayEngine(registry.template_dir)
        plan = engine.plan(layout, resolution, selection)
        plan.ops = [op for op in plan.ops if not op.dest.name.startswith("vite")]

        await engine.apply(layout, resolution, selection, plan=plan)
        assert not (out_dir / "vite.config.js").exists()
        assert (out_dir / "src" / "main.jsx").exists()
