"""Abstract repository interface for one-time email tokens."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class TokenPurpose(str, Enum):
    """What a token may be redeemed for. Part of every lookup."""

    VERIFY_EMAIL = "verify-email"
    RESET_PASSWORD = "reset-password"


@dataclass(frozen=True)
class OneTimeTokenData:
    """Immutable one-time token data."""

    id: UUID
    account_id: UUID
    purpose: TokenPurpose
    token_hash: str
    expires_at: datetime
    consumed_at: datetime | None
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if the token has expired."""
        return now >= self.expires_at

    def is_consumed(self) -> bool:
        """Check if the token has been redeemed."""
        return self.consumed_at is not None


class OneTimeTokenRepository(ABC):
    """Abstract repository for verification and reset tokens.

    Only SHA-256 hashes of raw tokens are stored.
    """

    @abstractmethod
    async def create(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> UUID:
        """Store a new unconsumed token.

        Parameters
        ----------
        account_id
            Owner of the token
        purpose
            Flow the token belongs to
        token_hash
            SHA-256 hash of the raw token
        expires_at
            When the token stops being redeemable

        Returns
        -------
        The token's unique identifier
        """

    @abstractmethod
    async def consume(
        self,
        token_hash: str,
        purpose: TokenPurpose,
        now: datetime,
    ) -> UUID | None:
        """Atomically mark a live token consumed.

        A single conditional update: of any number of concurrent callers,
        exactly one gets the account id back.

        Returns
        -------
        Owning account id, or None if no live token matched
        """

    @abstractmethod
    async def find_by_hash(
        self,
        token_hash: str,
        purpose: TokenPurpose,
    ) -> OneTimeTokenData | None:
        """Find a token regardless of state (to explain a failed redeem)."""

    @abstractmethod
    async def invalidate_all_for_account(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
    ) -> int:
        """Consume every outstanding token of this purpose for the account."""

    @abstractmethod
    async def count_recent_for_account(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
        since: datetime,
    ) -> int:
        """Count tokens created since a given time (for rate limiting)."""

    @abstractmethod
    async def cleanup_expired(self, expired_before: datetime) -> int:
        """Delete tokens that expired before ``expired_before``; returns the count."""
