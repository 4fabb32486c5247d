"""Template resolution: which sources to overlay and whose entry point wins."""

from __future__ import annotations

from viteforge.utils import print_warning

from .models import FeatureSelection, Resolution, Tier, VariantKey
from .registry import TemplateRegistry


def resolve(selection: FeatureSelection, registry: TemplateRegistry) -> Resolution:
    """Compute the ordered overlay sources and the entry-point variant.

    Order is ``base``, auth, database, integration.  The integration entry
    point is the only one aware of both auth and database, so it outranks
    the auth-only entry point, which outranks the base one.

    When both providers are selected but no integration source is
    registered for the pair, the auth-only entry point is used and a
    warning is recorded.
    """
    sources = registry.sources_for(selection)
    by_tier = {s.tier: s for s in reversed(sources)}
    warnings: list[str] = []

    integration = registry.integration_for(selection)
    if integration is not None:
        variant = VariantKey.INTEGRATION
        entry = integration
    elif Tier.AUTH in by_tier:
        variant = VariantKey.AUTH_ONLY
        entry = by_tier[Tier.AUTH]
        if selection.has_database:
            message = (
                "No integration template registered for "
                f"{selection.auth_provider.value}+{selection.database_provider.value}; "
                "falling back to the auth-only entry point"
            )
            warnings.append(message)
            print_warning(f"Warning: {message}")
    else:
        variant = VariantKey.BASE
        entry = by_tier[Tier.BASE]

    return Resolution(
        sources=sources,
        variant=variant,
        entry_source=entry.id,
        warnings=warnings,
    )
