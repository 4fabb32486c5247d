"""Interactive collection of a ``FeatureSelection``.

Anything given on the command line is used as-is; everything else is asked
with Rich prompts, or filled from defaults when prompting is disabled.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from rich.prompt import Confirm, Prompt

from viteforge.composer.models import (
    DEFAULT_TOGGLES,
    TOGGLE_TITLES,
    AuthProvider,
    DatabaseProvider,
    FeatureSelection,
    FeatureToggle,
    PackageManager,
)
from viteforge.utils import console, print_error


_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def ask_directory(default: str = ".") -> str:
    return Prompt.ask("Where would you like to create your project?", default=default)


def confirm_non_empty(path: str | Path) -> bool:
    """Ask for consent before scaffolding into a directory that has files."""
    return Confirm.ask(f"Directory {path} is not empty. Continue anyway?", default=False)


def parse_features(text: str) -> frozenset[FeatureToggle]:
    """Parse a comma-separated toggle list such as ``"router,zustand"``.

    ``"none"`` or an empty string selects nothing.

    Raises:
        ValueError: An entry is not a known toggle.
    """
    items = [part.strip() for part in text.split(",") if part.strip()]
    if items == ["none"]:
        return frozenset()
    toggles = set()
    for item in items:
        try:
            toggles.add(FeatureToggle(item))
        except ValueError:
            valid = ", ".join(t.value for t in FeatureToggle)
            raise ValueError(f"Unknown feature '{item}' (expected one of: {valid})") from None
    return frozenset(toggles)


def _ask_name(default: str) -> str:
    while True:
        name = Prompt.ask("What is your project named?", default=default)
        if _NAME_RE.match(name):
            return name
        print_error("Project name may only include letters, numbers, underscores and hyphens")


def _ask_toggles() -> frozenset[FeatureToggle]:
    console.print("Select additional features:")
    return frozenset(
        t
        for t in FeatureToggle
        if Confirm.ask(f"  {TOGGLE_TITLES[t]}", default=t in DEFAULT_TOGGLES)
    )


def collect_selection(
    root_dir: str | Path,
    *,
    name: Optional[str] = None,
    package_manager: Optional[str] = None,
    auth: Optional[str] = None,
    database: Optional[str] = None,
    features: Optional[str] = None,
    interactive: bool = True,
) -> FeatureSelection:
    """Build the run's ``FeatureSelection``.

    Raises:
        pydantic.ValidationError: A flag value is not a valid choice.
        ValueError: ``features`` names an unknown toggle.
    """
    default_name = Path(root_dir).resolve().name

    if name is None:
        name = _ask_name(default_name) if interactive else default_name

    if package_manager is None:
        package_manager = (
            Prompt.ask(
                "Which package manager do you want to use?",
                choices=[pm.value for pm in PackageManager],
                default=PackageManager.NPM.value,
            )
            if interactive
            else PackageManager.NPM.value
        )

    if auth is None:
        auth = (
            Prompt.ask(
                "Add authentication?",
                choices=[a.value for a in AuthProvider],
                default=AuthProvider.NONE.value,
            )
            if interactive
            else AuthProvider.NONE.value
        )

    if database is None:
        database = (
            Prompt.ask(
                "Add a database?",
                choices=[d.value for d in DatabaseProvider],
                default=DatabaseProvider.NONE.value,
            )
            if interactive
            else DatabaseProvider.NONE.value
        )

    if features is not None:
        toggles = parse_features(features)
    elif interactive:
        toggles = _ask_toggles()
    else:
        toggles = DEFAULT_TOGGLES

    return FeatureSelection(
        project_name=name,
        package_manager=package_manager,
        auth_provider=auth,
        database_provider=database,
        toggles=toggles,
    )
