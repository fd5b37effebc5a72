"""OAuth provider integration."""

from jelly_identity.infrastructure.oauth.client import OAuthProviderClient
from jelly_identity.infrastructure.oauth.providers import (
    OAuthProviderConfig,
    OAuthProviderRegistry,
    build_provider_configs,
)

__all__ = [
    "OAuthProviderClient",
    "OAuthProviderConfig",
    "OAuthProviderRegistry",
    "build_provider_configs",
]
