# ruff: noqa: E501 - Long import paths in __init__.py re-exports
"""SQLAlchemy models for identity management."""

from jelly_identity.infrastructure.persistence.sqlalchemy.models.account_model import (
    AccountModel,
)
from jelly_identity.infrastructure.persistence.sqlalchemy.models.identity_model import (
    IdentityModel,
)
from jelly_identity.infrastructure.persistence.sqlalchemy.models.oauth_state_model import (
    OAuthStateModel,
)
from jelly_identity.infrastructure.persistence.sqlalchemy.models.one_time_token_model import (
    OneTimeTokenModel,
)

__all__ = [
    "AccountModel",
    "IdentityModel",
    "OAuthStateModel",
    "OneTimeTokenModel",
]
