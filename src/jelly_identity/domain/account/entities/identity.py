"""Identity entity: a link from an account to an OAuth provider account."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class Identity:
    """A linked provider account.

    ``(provider, username.lower())`` is unique across all accounts.
    """

    id: UUID
    account_id: UUID
    provider: str
    username: str
    name: str | None
    refresh_token: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ProviderIdentity:
    """Profile returned by an OAuth provider, normalized across providers."""

    provider: str
    provider_user_id: str
    username: str
    name: str
    email: str | None = None
    refresh_token: str | None = None
