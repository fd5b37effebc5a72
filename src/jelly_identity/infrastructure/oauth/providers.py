"""OAuth provider endpoints and profile normalization."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from jelly_identity.domain.account import ProviderIdentity
from jelly_identity.exceptions import UnknownProviderError

if TYPE_CHECKING:
    from jelly_config.settings import Settings

ProfileParser = Callable[[str, Mapping[str, Any]], ProviderIdentity]


def _parse_google(provider: str, profile: Mapping[str, Any]) -> ProviderIdentity:
    email = profile["email"]
    return ProviderIdentity(
        provider=provider,
        provider_user_id=str(profile["sub"]),
        username=email,
        name=profile.get("name") or email,
        email=email,
    )


def _parse_github(provider: str, profile: Mapping[str, Any]) -> ProviderIdentity:
    login = profile["login"]
    return ProviderIdentity(
        provider=provider,
        provider_user_id=str(profile["id"]),
        username=login,
        name=profile.get("name") or login,
        email=profile.get("email"),
    )


def _parse_twitter(provider: str, profile: Mapping[str, Any]) -> ProviderIdentity:
    data = profile.get("data", profile)
    username = data["username"]
    return ProviderIdentity(
        provider=provider,
        provider_user_id=str(data["id"]),
        username=username,
        name=data.get("name") or username,
    )


def _parse_facebook(provider: str, profile: Mapping[str, Any]) -> ProviderIdentity:
    user_id = str(profile["id"])
    email = profile.get("email")
    return ProviderIdentity(
        provider=provider,
        provider_user_id=user_id,
        username=email or user_id,
        name=profile.get("name") or email or user_id,
        email=email,
    )


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Everything needed to run the authorization code flow with one provider."""

    name: str
    client_id: str
    client_secret: str | None
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: tuple[str, ...]
    parse_profile: ProfileParser
    login_hint_param: str | None = None
    revoke_url: str | None = None
    userinfo_params: Mapping[str, str] = field(default_factory=dict)
    userinfo_headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def token_auth_method(self) -> str:
        return "client_secret_post" if self.client_secret else "none"


def _secret(value: Any) -> str | None:
    if value is None:
        return None
    secret = value.get_secret_value()
    return secret or None


def build_provider_configs(settings: Settings) -> list[OAuthProviderConfig]:
    """Provider configs for every provider with a client id configured."""
    configs: list[OAuthProviderConfig] = []

    if settings.google_client_id:
        configs.append(
            OAuthProviderConfig(
                name="google",
                client_id=settings.google_client_id,
                client_secret=_secret(settings.google_client_secret),
                authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
                token_url="https://oauth2.googleapis.com/token",
                revoke_url="https://oauth2.googleapis.com/revoke",
                userinfo_url="https://www.googleapis.com/oauth2/v3/userinfo",
                scopes=(
                    "https://www.googleapis.com/auth/userinfo.email",
                    "https://www.googleapis.com/auth/userinfo.profile",
                ),
                login_hint_param="login_hint",
                parse_profile=_parse_google,
            ),
        )

    if settings.github_client_id:
        configs.append(
            OAuthProviderConfig(
                name="github",
                client_id=settings.github_client_id,
                client_secret=_secret(settings.github_client_secret),
                authorize_url="https://github.com/login/oauth/authorize",
                token_url="https://github.com/login/oauth/access_token",
                userinfo_url="https://api.github.com/user",
                scopes=("read:user", "user:email"),
                login_hint_param="login",
                userinfo_headers={
                    "Accept": "application/vnd.github.v3+json",
                    "User-Agent": settings.app_name,
                },
                parse_profile=_parse_github,
            ),
        )

    if settings.twitter_client_id:
        configs.append(
            OAuthProviderConfig(
                name="twitter",
                client_id=settings.twitter_client_id,
                client_secret=None,
                authorize_url="https://twitter.com/i/oauth2/authorize",
                token_url="https://api.twitter.com/2/oauth2/token",
                revoke_url="https://api.twitter.com/2/oauth2/revoke",
                userinfo_url="https://api.twitter.com/2/users/me",
                scopes=("tweet.read", "users.read", "offline.access"),
                parse_profile=_parse_twitter,
            ),
        )

    if settings.facebook_client_id:
        configs.append(
            OAuthProviderConfig(
                name="facebook",
                client_id=settings.facebook_client_id,
                client_secret=_secret(settings.facebook_client_secret),
                authorize_url="https://www.facebook.com/v13.0/dialog/oauth",
                token_url="https://graph.facebook.com/v13.0/oauth/access_token",
                userinfo_url="https://graph.facebook.com/v13.0/me",
                userinfo_params={"fields": "id,name,email"},
                scopes=("public_profile", "email"),
                parse_profile=_parse_facebook,
            ),
        )

    return configs


class OAuthProviderRegistry:
    """Lookup of enabled providers by name."""

    def __init__(self, configs: list[OAuthProviderConfig], default: str | None = None):
        self._configs = {config.name: config for config in configs}
        self._default = default

    @classmethod
    def from_settings(cls, settings: Settings) -> OAuthProviderRegistry:
        return cls(build_provider_configs(settings), settings.oauth_default_provider)

    def get(self, name: str | None = None) -> OAuthProviderConfig:
        """Return the named provider, or the default one when name is None.

        Raises
        ------
        UnknownProviderError
            If the provider is unknown or has no client id configured
        """
        key = name or self._default
        if key is None or key not in self._configs:
            raise UnknownProviderError(str(key))
        return self._configs[key]

    def names(self) -> list[str]:
        return sorted(self._configs)

    def __contains__(self, name: object) -> bool:
        return name in self._configs
