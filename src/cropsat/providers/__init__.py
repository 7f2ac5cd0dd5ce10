"""Provider registry for scene catalog access.

Provides ``get_provider()`` to instantiate configured provider
instances by name. Supports CDSE (live Sentinel-2 catalog) and the
canned fallback sample provider.
"""

from __future__ import annotations

from cropsat.config import Config
from cropsat.exceptions import ConfigurationError
from cropsat.providers.base import SceneProvider
from cropsat.providers.cdse import CDSEProvider
from cropsat.providers.fallback import FallbackProvider

_PROVIDER_REGISTRY: dict[str, type[SceneProvider]] = {
    "cdse": CDSEProvider,
    "fallback": FallbackProvider,
}


def get_registered_names() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_PROVIDER_REGISTRY)


def get_provider(name: str, config: Config) -> SceneProvider:
    """Return a configured provider instance by name.

    Provider names are case-insensitive.

    Args:
        name: Provider identifier (``"cdse"`` or ``"fallback"``).
        config: Frozen configuration snapshot.

    Returns:
        A configured ``SceneProvider`` instance.

    Raises:
        ConfigurationError: If *name* does not match a registered provider.

    Example:
        >>> from cropsat.config import Config
        >>> get_provider("CDSE", Config()).name
        'cdse'
    """
    key = name.lower()
    if key not in _PROVIDER_REGISTRY:
        valid = ", ".join(sorted(_PROVIDER_REGISTRY))
        raise ConfigurationError(
            what=f"Unknown provider: {name!r}",
            cause=f"Valid providers are: {valid}",
            fix=f"Use one of: {valid}",
        )
    return _PROVIDER_REGISTRY[key](config=config)
