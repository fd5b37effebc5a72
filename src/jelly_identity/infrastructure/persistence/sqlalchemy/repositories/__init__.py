# ruff: noqa: E501 - Long import paths in __init__.py re-exports
"""SQLAlchemy repository implementations for identity management."""

from jelly_identity.infrastructure.persistence.sqlalchemy.repositories.account_repository import (
    AccountRepositorySQLAlchemy,
)
from jelly_identity.infrastructure.persistence.sqlalchemy.repositories.oauth_state_repository import (
    OAuthStateRepositorySQLAlchemy,
)
from jelly_identity.infrastructure.persistence.sqlalchemy.repositories.one_time_token_repository import (
    OneTimeTokenRepositorySQLAlchemy,
)

__all__ = [
    "AccountRepositorySQLAlchemy",
    "OAuthStateRepositorySQLAlchemy",
    "OneTimeTokenRepositorySQLAlchemy",
]
