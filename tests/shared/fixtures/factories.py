"""Test data builders shared across test packages."""

from jelly_identity.domain.account import Account, ProviderIdentity

STRONG_PASSWORD = "Tangerine-Velvet-Orbit-9371"  # NOQA: S105
OTHER_STRONG_PASSWORD = "Marble-Kestrel-Drift-5208"  # NOQA: S105


def make_account(
    email: str = "ada@example.com",
    name: str = "Ada Lovelace",
    password_digest: str | None = "pbkdf2_sha256$1000$salt$aGFzaA==",
    **kwargs,
) -> Account:
    return Account(name=name, email=email, password_digest=password_digest, **kwargs)


def make_provider_identity(
    provider: str = "github",
    username: str = "octocat",
    name: str = "The Octocat",
    email: str | None = "octocat@example.com",
) -> ProviderIdentity:
    return ProviderIdentity(
        provider=provider,
        provider_user_id="583231",
        username=username,
        name=name,
        email=email,
        refresh_token="refresh-1",
    )
