"""Project layout planning: single root or split frontend/backend."""

from __future__ import annotations

from pathlib import Path

from .models import FeatureSelection, ProjectLayout


FRONTEND_DIRNAME = "frontend"
BACKEND_DIRNAME = "backend"


def plan_layout(selection: FeatureSelection, root_dir: str | Path) -> ProjectLayout:
    """Decide the generated project's directory roots.

    A database needs a backend server, so selecting one splits the project
    into ``<root>/frontend`` and ``<root>/backend``.  Nothing else in the
    selection affects the layout.
    """
    root = Path(root_dir)
    if not selection.has_database:
        return ProjectLayout(root_dir=root, frontend_dir=root)
    return ProjectLayout(
        root_dir=root,
        frontend_dir=root / FRONTEND_DIRNAME,
        backend_dir=root / BACKEND_DIRNAME,
    )
