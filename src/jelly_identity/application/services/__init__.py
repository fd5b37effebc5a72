"""Identity application services."""

from jelly_identity.application.services.account_service import AccountService
from jelly_identity.application.services.oauth_login_service import OAuthLoginService
from jelly_identity.application.services.oauth_state_service import (
    AuthorizationRequest,
    OAuthStateManager,
)
from jelly_identity.application.services.token_service import (
    OneTimeTokenService,
    hash_token,
)

__all__ = [
    "AccountService",
    "AuthorizationRequest",
    "OAuthLoginService",
    "OAuthStateManager",
    "OneTimeTokenService",
    "hash_token",
]
