"""viteforge template composition engine.

Decides which template sources to overlay for a ``FeatureSelection``, in
what order, which entry point wins, and synthesizes the generated project's
``package.json`` and ``.env`` from per-feature fragments.

Quick usage::

    from viteforge.composer import (
        FeatureSelection, ManifestSynthesizer, OverlayEngine,
        default_registry, plan_layout, resolve,
    )

    selection = FeatureSelection(project_name="my-app", auth_provider="clerk")
    registry = default_registry()
    layout = plan_layout(selection, "/tmp/my-app")
    resolution = resolve(selection, registry)
    tree = await OverlayEngine(registry.template_dir).apply(layout, resolution, selection)
    synthesis = ManifestSynthesizer(registry).synthesize(selection, resolution.sources, layout)
"""

from viteforge.composer.errors import (
    ComposerError,
    ConfigurationError,
    OverlayIOError,
    SourceMissingError,
)
from viteforge.composer.layout import plan_layout
from viteforge.composer.manifest import (
    ManifestSynthesizer,
    PatchResult,
    Synthesis,
    apply_config_patch,
    render_env,
)
from viteforge.composer.models import (
    AuthProvider,
    ConfigPatch,
    DatabaseProvider,
    EnvVar,
    ExcludeRule,
    FeatureSelection,
    FeatureToggle,
    FileTree,
    LayoutRole,
    ManifestFragment,
    PackageManager,
    PackageManifest,
    ProjectLayout,
    Resolution,
    TemplateSource,
    Tier,
    VariantKey,
)
from viteforge.composer.overlay import ENTRY_POINT, OverlayEngine
from viteforge.composer.registry import TemplateRegistry, default_registry
from viteforge.composer.renderer import TemplateRenderer
from viteforge.composer.resolver import resolve
from viteforge.composer.writer import ManifestWriter

__all__ = [
    "ENTRY_POINT",
    "AuthProvider",
    "ComposerError",
    "ConfigPatch",
    "ConfigurationError",
    "DatabaseProvider",
    "EnvVar",
    "ExcludeRule",
    "FeatureSelection",
    "FeatureToggle",
    "FileTree",
    "LayoutRole",
    "ManifestFragment",
    "ManifestSynthesizer",
    "ManifestWriter",
    "OverlayEngine",
    "OverlayIOError",
    "PackageManager",
    "PackageManifest",
    "PatchResult",
    "ProjectLayout",
    "Resolution",
    "SourceMissingError",
    "Synthesis",
    "TemplateRegistry",
    "TemplateRenderer",
    "TemplateSource",
    "Tier",
    "VariantKey",
    "apply_config_patch",
    "default_registry",
    "plan_layout",
    "render_env",
    "resolve",
]
