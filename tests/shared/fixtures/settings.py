"""Settings fixtures that never read the developer's .env files."""

from collections.abc import Callable
from typing import Any

import pytest

from jelly_config.settings import Settings

TEST_SECRET_KEY = "test-secret-key-for-signing-session-cookies-0123456789"  # NOQA: S105


def build_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "secret_key": TEST_SECRET_KEY,
        "postgres_password": "unused",
        "jelly_domain": "https://jelly.test",
        "jelly_help_url": "https://jelly.test/help",
        "password_hash_iterations": 1000,
        "email_backend": "console",
        "api_cookie_secure": False,
        "google_client_id": "google-client",
        "google_client_secret": "google-secret",
        "github_client_id": "github-client",
        "github_client_secret": "github-secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def settings(database_url) -> Settings:
    return build_settings(database_url_override=database_url)
