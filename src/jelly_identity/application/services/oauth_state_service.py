"""OAuth state management for the authorization redirect round trip."""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from jelly.domain.shared.exceptions import ValidationError
from jelly.domain.shared.time import utc_now
from jelly_identity.exceptions import StateMismatchError

if TYPE_CHECKING:
    from jelly_identity.domain.account import ProviderIdentity
    from jelly_identity.infrastructure.oauth import (
        OAuthProviderClient,
        OAuthProviderRegistry,
    )
    from jelly_identity.repositories import OAuthStateRepository

logger = logging.getLogger(__name__)


def _hash_state(state: str) -> str:
    return hashlib.sha256(state.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AuthorizationRequest:
    """Where to send the browser, and the state it will bring back."""

    provider: str
    authorize_url: str
    state: str


class OAuthStateManager:
    """Issues single-use state values and completes the provider callback.

    State values are random, stored hashed with their PKCE verifier and a
    short expiry, and bound to the provider they were issued for.
    """

    STATE_BYTES = 32
    VERIFIER_BYTES = 48

    def __init__(  # noqa: PLR0913
        self,
        state_repository: OAuthStateRepository,
        providers: OAuthProviderRegistry,
        client: OAuthProviderClient,
        redirect_base_url: str,
        state_ttl: timedelta = timedelta(minutes=10),
    ):
        self._state_repo = state_repository
        self._providers = providers
        self._client = client
        self._redirect_base_url = redirect_base_url.rstrip("/")
        self._state_ttl = state_ttl

    def redirect_uri(self, provider: str) -> str:
        return f"{self._redirect_base_url}/{provider}/callback"

    async def begin(
        self,
        provider: str | None = None,
        login_hint: str | None = None,
    ) -> AuthorizationRequest:
        """Start a login with ``provider`` (the default provider if None).

        Raises
        ------
        UnknownProviderError
            If the provider is not configured
        """
        config = self._providers.get(provider)
        state = secrets.token_urlsafe(self.STATE_BYTES)
        code_verifier = secrets.token_urlsafe(self.VERIFIER_BYTES)

        await self._state_repo.create(
            provider=config.name,
            state_hash=_hash_state(state),
            code_verifier=code_verifier,
            expires_at=utc_now() + self._state_ttl,
            login_hint=login_hint,
        )

        url = self._client.authorization_url(
            config,
            redirect_uri=self.redirect_uri(config.name),
            state=state,
            code_verifier=code_verifier,
            login_hint=login_hint,
        )
        logger.debug("Started %s authorization", config.name)
        return AuthorizationRequest(provider=config.name, authorize_url=url, state=state)

    async def complete(
        self,
        provider: str,
        returned_state: str | None,
        code: str | None,
    ) -> ProviderIdentity:
        """Validate the callback state and exchange the code for a profile.

        Raises
        ------
        StateMismatchError
            If the state was never issued for this provider, expired or was
            already used
        ValidationError
            If the provider sent no authorization code
        ExternalServiceError
            If the provider exchange fails
        """
        config = self._providers.get(provider)

        if not returned_state:
            logger.warning("OAuth callback for %s without state", config.name)
            raise StateMismatchError()

        pending = await self._state_repo.consume(
            config.name,
            _hash_state(returned_state),
            utc_now(),
        )
        if pending is None:
            logger.warning("OAuth state mismatch on %s callback", config.name)
            raise StateMismatchError()

        if not code:
            raise ValidationError("Login was cancelled or not authorized")

        return await self._client.exchange(
            config,
            redirect_uri=self.redirect_uri(config.name),
            code=code,
            code_verifier=pending.code_verifier,
        )
