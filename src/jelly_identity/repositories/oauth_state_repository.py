"""Abstract repository interface for pending OAuth logins."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class OAuthStateData:
    """A pending authorization started by ``begin`` and awaiting callback."""

    id: UUID
    provider: str
    state_hash: str
    code_verifier: str
    login_hint: str | None
    expires_at: datetime
    consumed_at: datetime | None
    created_at: datetime


class OAuthStateRepository(ABC):
    @abstractmethod
    async def create(
        self,
        provider: str,
        state_hash: str,
        code_verifier: str,
        expires_at: datetime,
        login_hint: str | None = None,
    ) -> UUID:
        pass

    @abstractmethod
    async def consume(
        self,
        provider: str,
        state_hash: str,
        now: datetime,
    ) -> OAuthStateData | None:
        """Atomically consume a live state issued for ``provider``.

        Returns None when the state is unknown, belongs to another provider,
        expired or was already used.
        """

    @abstractmethod
    async def cleanup_expired(self, expired_before: datetime) -> int:
        """Delete states that expired before ``expired_before``; returns the count."""
