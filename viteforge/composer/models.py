"""Data model for template composition.

``FeatureSelection`` is the single input of a run.  Everything else in this
module is either static registry data (``TemplateSource``,
``ManifestFragment``) or derived from the selection (``Resolution``,
``ProjectLayout``, ``FileTree``, ``PackageManifest``).
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError


# ---------------------------------------------------------------------------
# Selection axes
# ---------------------------------------------------------------------------


class PackageManager(str, Enum):
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"

    @property
    def install_command(self) -> list[str]:
        """Command line that installs the generated project's dependencies."""
        if self is PackageManager.YARN:
            return ["yarn"]
        return [self.value, "install"]

    def run_script(self, script: str) -> str:
        return f"{self.value} run {script}"


class AuthProvider(str, Enum):
    NONE = "none"
    CLERK = "clerk"


class DatabaseProvider(str, Enum):
    NONE = "none"
    POSTGRES_PRISMA = "postgres-prisma"


class FeatureToggle(str, Enum):
    """Independent boolean features.  Declaration order is application order."""

    ROUTER = "router"
    ZUSTAND = "zustand"
    DARK_MODE = "darkMode"
    EXAMPLES = "examples"
    LINTING = "linting"
    CONTAINER_QUERIES = "containerQueries"


DEFAULT_TOGGLES: frozenset[FeatureToggle] = frozenset(
    {
        FeatureToggle.ROUTER,
        FeatureToggle.ZUSTAND,
        FeatureToggle.DARK_MODE,
        FeatureToggle.EXAMPLES,
    }
)

TOGGLE_TITLES: dict[FeatureToggle, str] = {
    FeatureToggle.ROUTER: "React Router",
    FeatureToggle.ZUSTAND: "Zustand (State Management)",
    FeatureToggle.DARK_MODE: "Dark Mode",
    FeatureToggle.EXAMPLES: "Example Components",
    FeatureToggle.LINTING: "ESLint",
    FeatureToggle.CONTAINER_QUERIES: "Tailwind Container Queries",
}


class FeatureSelection(BaseModel):
    """The user's choices for one generation run.  Immutable once built."""

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(
        ...,
        pattern=r"^[A-Za-z0-9_-]+$",
        description="Package name of the generated project",
    )
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    auth_provider: AuthProvider = Field(default=AuthProvider.NONE)
    database_provider: DatabaseProvider = Field(default=DatabaseProvider.NONE)
    toggles: frozenset[FeatureToggle] = Field(default=DEFAULT_TOGGLES)

    @property
    def has_auth(self) -> bool:
        return self.auth_provider is not AuthProvider.NONE

    @property
    def has_database(self) -> bool:
        return self.database_provider is not DatabaseProvider.NONE

    def has(self, toggle: FeatureToggle) -> bool:
        return toggle in self.toggles

    def ordered_toggles(self) -> list[FeatureToggle]:
        """Selected toggles in declaration order (never set iteration order)."""
        return [t for t in FeatureToggle if t in self.toggles]


# ---------------------------------------------------------------------------
# Registry entries
# ---------------------------------------------------------------------------

Predicate = Callable[[FeatureSelection], bool]


def always(_: FeatureSelection) -> bool:
    return True


class Tier(IntEnum):
    """Fixed precedence for overlays and manifest fragments, lowest first."""

    BASE = 0
    FEATURE = 1
    AUTH = 2
    DATABASE = 3
    INTEGRATION = 4


class LayoutRole(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    ROOT = "root"


@dataclass(frozen=True)
class ExcludeRule:
    """Skip files matching *pattern* unless the *unless* toggle is selected."""

    pattern: str
    unless: FeatureToggle


@dataclass(frozen=True)
class TemplateSource:
    """A named overlay unit of template files."""

    id: str
    root: str
    tier: Tier
    applies_when: Predicate = always
    mounts: Mapping[str, LayoutRole] = field(default_factory=dict)
    optional_files: tuple[str, ...] = ()
    excludes: tuple[ExcludeRule, ...] = ()
    overrides: tuple[str, ...] = ()

    def role_for(self, top_level: str) -> LayoutRole:
        return self.mounts.get(top_level, LayoutRole.FRONTEND)


@dataclass(frozen=True)
class EnvVar:
    key: str
    comment: Optional[str] = None
    default: str = ""


@dataclass(frozen=True)
class ConfigPatch:
    """Insert *text* right after *anchor* in *target* unless *marker* is present."""

    target: str
    marker: str
    anchor: str
    text: str


@dataclass(frozen=True)
class ManifestFragment:
    """Per-feature contribution to a package manifest and the env file."""

    id: str
    tier: Tier
    label: str
    applies_when: Predicate = always
    role: LayoutRole = LayoutRole.FRONTEND
    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)
    env_vars: tuple[EnvVar, ...] = ()
    patches: tuple[ConfigPatch, ...] = ()


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


class VariantKey(str, Enum):
    """Which source's entry point is authoritative."""

    BASE = "base"
    AUTH_ONLY = "auth-only"
    INTEGRATION = "integration"


@dataclass
class Resolution:
    sources: list[TemplateSource]
    variant: VariantKey
    entry_source: str
    warnings: list[str] = field(default_factory=list)

    @property
    def source_ids(self) -> list[str]:
        return [s.id for s in self.sources]


@dataclass(frozen=True)
class ProjectLayout:
    """Where the generated project's roots live on disk."""

    root_dir: Path
    frontend_dir: Path
    backend_dir: Optional[Path] = None

    @property
    def is_split(self) -> bool:
        return self.backend_dir is not None

    def dir_for(self, role: LayoutRole) -> Path:
        if role is LayoutRole.ROOT:
            return self.root_dir
        if role is LayoutRole.FRONTEND:
            return self.frontend_dir
        if self.backend_dir is None:
            raise ConfigurationError(
                f"No backend directory in a single-root layout at {self.root_dir}"
            )
        return self.backend_dir


@dataclass
class FileTree:
    """Result of an overlay run.

    ``files`` maps each destination to the source that wrote it last, in
    the order those final writes happened; the entry point comes last.
    """

    root_dir: Path
    files: dict[str, str] = field(default_factory=dict)
    entry_point: Optional[str] = None
    entry_source: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


class PackageManifest(BaseModel):
    """A ``package.json`` descriptor."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    private: bool = True
    version: str = "0.0.0"
    type: str = "module"
    main: Optional[str] = None
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"
