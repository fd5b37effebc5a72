"""Abstract repository interfaces for identity management."""

from jelly_identity.repositories.oauth_state_repository import (
    OAuthStateData,
    OAuthStateRepository,
)
from jelly_identity.repositories.one_time_token_repository import (
    OneTimeTokenData,
    OneTimeTokenRepository,
    TokenPurpose,
)

__all__ = [
    "OAuthStateData",
    "OAuthStateRepository",
    "OneTimeTokenData",
    "OneTimeTokenRepository",
    "TokenPurpose",
]
