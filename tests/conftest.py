"""Shared pytest fixtures for the viteforge test suite.

Provides reusable fixtures for:
- A small on-disk template tree mirroring the built-in source layout
- Registries bound to that tree
- A ``FeatureSelection`` factory
- Output directories
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from viteforge.composer import FeatureSelection, TemplateRegistry, Tier, default_registry


# ---------------------------------------------------------------------------
# Template tree
# ---------------------------------------------------------------------------

TAILWIND_CONFIG_TEXT = """module.exports = {
  content: ["./index.html"],
  plugins: [
    require("tailwindcss-animate"),
  ],
};
"""

FAKE_TEMPLATES: dict[str, str] = {
    # base
    "base/index.html.j2": "<title>{{ project_name }}</title>\n",
    "base/vite.config.js": "export default {};\n",
    "base/postcss.config.js": "export default { plugins: {} };\n",
    "base/tailwind.config.cjs": TAILWIND_CONFIG_TEXT,
    "base/eslint.config.js": "export default [];\n",
    "base/src/App.jsx.j2": "// base entry for {{ project_name }}\n",
    "base/src/main.jsx": "import App from './App';\n",
    "base/src/pages/Home.jsx": "home base\n",
    "base/src/pages/Dashboard.jsx": "dashboard base\n",
    "base/src/store/counter.js": "counter store\n",
    # auth
    "auth/clerk/src/App.jsx": "// auth entry\n",
    "auth/clerk/src/lib/clerk.jsx": "clerk provider\n",
    "auth/clerk/src/pages/Dashboard.jsx": "dashboard auth\n",
    # database
    "database/postgres-prisma/src/App.jsx": "// database entry\n",
    "database/postgres-prisma/src/lib/api.js": "api client\n",
    "database/postgres-prisma/backend/server.js": "express server\n",
    "database/postgres-prisma/backend/prisma/schema.prisma": "model User {}\n",
    # integration
    "integrations/clerk-postgres/src/App.jsx": "// integration entry\n",
    "integrations/clerk-postgres/src/pages/Dashboard.jsx": "dashboard integration\n",
}


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative_path: content}`` under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def snapshot(root: Path) -> dict[str, bytes]:
    """Map every file under *root* to its bytes, keyed by posix relative path."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A fake template directory laid out like the bundled one."""
    return write_tree(tmp_path / "templates", FAKE_TEMPLATES)


@pytest.fixture
def registry(template_dir: Path) -> TemplateRegistry:
    """The built-in registry bound to the fake template directory."""
    return default_registry(template_dir)


@pytest.fixture
def registry_without_integration(template_dir: Path) -> TemplateRegistry:
    reg = default_registry(template_dir)
    reg.sources = [s for s in reg.sources if s.tier is not Tier.INTEGRATION]
    return reg


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    """Destination root for a generated project (not created yet)."""
    return tmp_path / "out" / "demo"


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------


@pytest.fixture
def make_selection() -> Callable[..., FeatureSelection]:
    """Factory for ``FeatureSelection`` with sensible test defaults."""

    def _make(**overrides: Any) -> FeatureSelection:
        data: dict[str, Any] = {"project_name": "demo"}
        data.update(overrides)
        return FeatureSelection(**data)

    return _make


@pytest.fixture
def full_stack_selection(make_selection) -> FeatureSelection:
    return make_selection(auth_provider="clerk", database_provider="postgres-prisma")


# ---------------------------------------------------------------------------
# Helpers exposed as fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tree_snapshot() -> Callable[[Path], dict[str, bytes]]:
    return snapshot


@pytest.fixture
def tree_writer() -> Callable[[Path, dict[str, str]], Path]:
    return write_tree
