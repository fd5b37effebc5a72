"""One-time token issuing and redemption for email verification and reset."""

import hashlib
import logging
import secrets
from datetime import timedelta
from uuid import UUID

from jelly.domain.shared.time import utc_now
from jelly_identity.exceptions import (
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
)
from jelly_identity.repositories import OneTimeTokenRepository, TokenPurpose

logger = logging.getLogger(__name__)


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token; only this is ever stored."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class OneTimeTokenService:
    """Issues opaque URL-safe tokens and redeems each of them at most once."""

    TOKEN_BYTES = 32

    def __init__(self, token_repository: OneTimeTokenRepository):
        self._token_repo = token_repository

    async def issue(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
        ttl: timedelta,
    ) -> str:
        """Create a token and return its raw value for embedding in a link.

        Parameters
        ----------
        account_id
            Account the token proves access for
        purpose
            Flow the token can be redeemed in
        ttl
            How long the token stays redeemable

        Returns
        -------
        The raw token. It is not recoverable later.
        """
        if ttl <= timedelta(0):
            msg = "ttl must be positive"
            raise ValueError(msg)

        raw_token = secrets.token_urlsafe(self.TOKEN_BYTES)
        await self._token_repo.create(
            account_id=account_id,
            purpose=purpose,
            token_hash=hash_token(raw_token),
            expires_at=utc_now() + ttl,
        )
        logger.debug("Issued %s token for account %s", purpose.value, account_id)
        return raw_token

    async def redeem(self, raw_token: str, purpose: TokenPurpose) -> UUID:
        """Consume a token and return the owning account id.

        The consume is one conditional update; the follow-up read only
        explains why it matched nothing.

        Raises
        ------
        TokenNotFoundError
            No token with this value exists for ``purpose``
        TokenAlreadyConsumedError
            The token was redeemed before
        TokenExpiredError
            The token is past its expiry
        """
        if not raw_token:
            raise TokenNotFoundError()

        token_hash = hash_token(raw_token)
        now = utc_now()
        account_id = await self._token_repo.consume(token_hash, purpose, now)
        if account_id is not None:
            logger.info("Redeemed %s token for account %s", purpose.value, account_id)
            return account_id

        raise await self._explain_failure(token_hash, purpose)

    async def peek(self, raw_token: str, purpose: TokenPurpose) -> UUID:
        """Check a token is redeemable without consuming it.

        Raises the same errors as ``redeem``.
        """
        if not raw_token:
            raise TokenNotFoundError()

        token_hash = hash_token(raw_token)
        token = await self._token_repo.find_by_hash(token_hash, purpose)
        if token is None:
            raise TokenNotFoundError()
        if token.is_consumed():
            raise TokenAlreadyConsumedError()
        if token.is_expired(utc_now()):
            raise TokenExpiredError()
        return token.account_id

    async def revoke_all(self, account_id: UUID, purpose: TokenPurpose) -> int:
        return await self._token_repo.invalidate_all_for_account(account_id, purpose)

    async def count_issued_since(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
        window: timedelta,
    ) -> int:
        return await self._token_repo.count_recent_for_account(
            account_id,
            purpose,
            utc_now() - window,
        )

    async def _explain_failure(
        self,
        token_hash: str,
        purpose: TokenPurpose,
    ) -> Exception:
        token = await self._token_repo.find_by_hash(token_hash, purpose)
        if token is None:
            return TokenNotFoundError()
        if token.is_consumed():
            return TokenAlreadyConsumedError()
        if token.is_expired(utc_now()):
            return TokenExpiredError()
        return TokenNotFoundError()
