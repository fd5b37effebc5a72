"""HTTP client for OAuth provider authorization and profile lookup."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from authlib.common.urls import add_params_to_uri
from authlib.integrations.base_client import OAuthError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from authlib.oauth2.rfc7636 import create_s256_code_challenge

from jelly.domain.shared.exceptions import ExternalServiceError
from jelly_identity.domain.account import ProviderIdentity
from jelly_identity.infrastructure.oauth.providers import OAuthProviderConfig

logger = logging.getLogger(__name__)

CODE_CHALLENGE_METHOD = "S256"


class OAuthProviderClient:
    """Runs the authorization code flow (with PKCE) against one provider at a time.

    Every outbound call is bounded by ``timeout`` seconds. Transport errors,
    provider error responses and unexpected profile shapes all surface as
    ExternalServiceError.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._transport = transport

    def authorization_url(
        self,
        config: OAuthProviderConfig,
        redirect_uri: str,
        state: str,
        code_verifier: str,
        login_hint: str | None = None,
    ) -> str:
        """Build the provider URL the browser is redirected to."""
        params: list[tuple[str, str]] = [
            ("response_type", "code"),
            ("client_id", config.client_id),
            ("redirect_uri", redirect_uri),
            ("scope", " ".join(config.scopes)),
            ("state", state),
            ("code_challenge", create_s256_code_challenge(code_verifier)),
            ("code_challenge_method", CODE_CHALLENGE_METHOD),
        ]
        if login_hint and config.login_hint_param:
            params.append((config.login_hint_param, login_hint))
        return add_params_to_uri(config.authorize_url, params)

    async def exchange(
        self,
        config: OAuthProviderConfig,
        redirect_uri: str,
        code: str,
        code_verifier: str,
    ) -> ProviderIdentity:
        """Exchange an authorization code and fetch the user's profile.

        Raises
        ------
        ExternalServiceError
            If the provider is unreachable, times out, rejects the code or
            returns a profile without the expected fields
        """
        try:
            async with self._create_client(config, redirect_uri) as client:
                token = await client.fetch_token(
                    config.token_url,
                    code=code,
                    code_verifier=code_verifier,
                )
                response = await client.get(
                    config.userinfo_url,
                    params=dict(config.userinfo_params) or None,
                    headers=dict(config.userinfo_headers) or None,
                )
                response.raise_for_status()
                profile = response.json()
        except httpx.TimeoutException as e:
            logger.warning("OAuth provider %s timed out: %s", config.name, e)
            raise ExternalServiceError(f"{config.name} did not respond in time") from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "OAuth provider %s returned error %d",
                config.name,
                e.response.status_code,
            )
            raise ExternalServiceError(f"{config.name} rejected the request") from e
        except (httpx.HTTPError, OAuthError) as e:
            logger.warning("OAuth exchange with %s failed: %s", config.name, e)
            raise ExternalServiceError(f"Could not sign in with {config.name}") from e
        except ValueError as e:
            logger.warning("OAuth provider %s sent an unreadable response", config.name)
            raise ExternalServiceError(f"Could not sign in with {config.name}") from e

        return self._normalize(config, profile, token)

    def _create_client(
        self,
        config: OAuthProviderConfig,
        redirect_uri: str,
    ) -> AsyncOAuth2Client:
        return AsyncOAuth2Client(
            client_id=config.client_id,
            client_secret=config.client_secret,
            token_endpoint_auth_method=config.token_auth_method,
            scope=" ".join(config.scopes),
            redirect_uri=redirect_uri,
            code_challenge_method=CODE_CHALLENGE_METHOD,
            timeout=self._timeout,
            transport=self._transport,
        )

    def _normalize(
        self,
        config: OAuthProviderConfig,
        profile: Any,
        token: Any,
    ) -> ProviderIdentity:
        if not isinstance(profile, dict):
            raise ExternalServiceError(f"Unexpected profile from {config.name}")
        try:
            identity = config.parse_profile(config.name, profile)
        except (KeyError, TypeError) as e:
            logger.warning("Profile from %s is missing %s", config.name, e)
            raise ExternalServiceError(f"Unexpected profile from {config.name}") from e

        refresh_token = token.get("refresh_token") if isinstance(token, dict) else None
        return ProviderIdentity(
            provider=identity.provider,
            provider_user_id=identity.provider_user_id,
            username=identity.username,
            name=identity.name,
            email=identity.email,
            refresh_token=refresh_token,
        )
