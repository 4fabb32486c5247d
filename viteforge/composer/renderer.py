"""Jinja2 rendering for ``.j2`` template files.

Template files ending in ``.j2`` are rendered with the run's context and
written without the suffix; everything else is copied verbatim by the
overlay engine.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .models import FeatureSelection, FeatureToggle, ProjectLayout


TEMPLATE_SUFFIX = ".j2"


class TemplateRenderer:
    """Jinja2 environment rooted at a template directory.

    Templates are addressed by their path relative to *template_dir*, e.g.
    ``"base/src/App.jsx.j2"``.  Undefined names raise instead of rendering
    as empty strings.
    """

    def __init__(self, template_dir: str | Path) -> None:
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["display_name"] = display_name

    def render(self, template_key: str, context: dict[str, Any]) -> str:
        return self.env.get_template(template_key).render(context)


def build_context(selection: FeatureSelection, layout: ProjectLayout) -> dict[str, Any]:
    """Build the template context for one run.

    ``toggles`` maps every toggle value to a bool so templates can test
    ``toggles.router`` without guarding against undefined names.
    """
    return {
        "project_name": selection.project_name,
        "package_manager": selection.package_manager.value,
        "auth_provider": selection.auth_provider.value,
        "database_provider": selection.database_provider.value,
        "has_auth": selection.has_auth,
        "has_database": selection.has_database,
        "toggles": {t.value: t in selection.toggles for t in FeatureToggle},
        "split_layout": layout.is_split,
    }


def strip_template_suffix(rel_path: str) -> str:
    if rel_path.endswith(TEMPLATE_SUFFIX):
        return rel_path[: -len(TEMPLATE_SUFFIX)]
    return rel_path


# Jinja2 filters


def display_name(value: str) -> str:
    """``my-cool_app`` -> ``My Cool App``."""
    return " ".join(word.capitalize() for word in re.split(r"[-_\s]+", value) if word)
