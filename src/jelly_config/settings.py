"""Application settings loaded from environment variables.

Configuration file discovery (in priority order):
1. OS environment variables (always highest priority)
2. JELLY_ENV_FILE environment variable (path to .env file)
3. config/.env.dev - local development
4. config/.env - production/Docker

Uses pydantic-settings for automatic type coercion and validation.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve().parent

    for parent in [current, *current.parents]:
        if (parent / "config").is_dir():
            return parent
        if (parent / "pyproject.toml").is_file():
            return parent
        if parent == Path("/app"):
            return parent

    return Path(__file__).resolve().parents[2]


def get_config_dir() -> Path:
    """Get the config directory path."""
    return _find_project_root() / "config"


def _resolve_env_file_path() -> Path | None:
    """Resolve the .env file path.

    Priority:
    1. JELLY_ENV_FILE env var (full or project-relative path)
    2. config/.env.dev (local development)
    3. config/.env (production)
    """
    env_file_path = os.environ.get("JELLY_ENV_FILE")
    if env_file_path:
        path = Path(env_file_path)
        if not path.is_absolute():
            path = _find_project_root() / path
        if path.exists():
            return path

    config_dir = get_config_dir()

    dev_env = config_dir / ".env.dev"
    if dev_env.exists():
        return dev_env

    prod_env = config_dir / ".env"
    if prod_env.exists():
        return prod_env

    return None


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Values are loaded from:
    1. OS environment variables (highest priority)
    2. .env file (config/.env.dev or config/.env)
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file_path(),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Security (MUST be set - app fails without these)
    secret_key: SecretStr  # Signs session cookies
    postgres_password: SecretStr  # Database password

    # Application
    app_name: str = "Jelly"
    jelly_domain: str = "http://localhost:8000"  # Public URL used in links
    jelly_help_url: str = ""

    # Database (POSTGRES_ prefix)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_db: str = "jelly"
    database_url_override: str | None = Field(default=None, alias="DATABASE_URL")

    # API (API_ prefix)
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_cors_origins: str = ""  # Empty = no CORS allowed (secure default)
    api_cookie_secure: bool = True
    # Lax so the cookie survives the redirect back from an OAuth provider
    api_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    @field_validator("api_cors_origins", mode="before")
    @classmethod
    def _validate_cors_origins(cls, v: Any) -> str:
        """Ensure cors_origins is stored as comma-separated string."""
        if isinstance(v, list):
            return ",".join(v)
        return str(v) if v else ""

    # Session cookie
    session_cookie_name: str = "jelly_session"
    session_cookie_domain: str | None = None
    session_expire_hours: int = 24 * 14

    # Passwords
    password_hash_iterations: int = 870_000
    password_min_score: int = Field(default=3, ge=0, le=4)
    password_pattern: Literal["alphanumeric_hyphen", "mixed_classes", "none"] = (
        "alphanumeric_hyphen"
    )

    # One-time tokens
    verify_token_ttl_hours: int = 24
    reset_token_ttl_hours: int = 1
    max_resets_per_day: int = 3
    oauth_state_ttl_minutes: int = 10

    # OAuth providers (a provider is enabled once its client id is set)
    oauth_default_provider: str = "google"
    oauth_http_timeout: float = 10.0
    google_client_id: str = ""
    google_client_secret: SecretStr | None = None
    github_client_id: str = ""
    github_client_secret: SecretStr | None = None
    twitter_client_id: str = ""
    facebook_client_id: str = ""
    facebook_client_secret: SecretStr | None = None

    # Email
    email_backend: Literal["console", "smtp", "postmark"] = "console"
    email_default_from: str = "Jelly <noreply@localhost>"
    email_timeout: float = 10.0
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: SecretStr | None = None
    smtp_use_tls: bool = True
    smtp_starttls: bool = True
    postmark_api_key: SecretStr | None = None
    postmark_message_stream: str = "outbound"

    # Job queue
    queue_max_attempts: int = 5
    queue_backoff_base_seconds: float = 30.0
    queue_backoff_max_seconds: float = 3600.0
    queue_batch_size: int = 50
    # Jobs run at once; keep within the engine pool (5 + 10 overflow)
    queue_concurrency: int = Field(default=5, ge=1)
    queue_poll_interval_seconds: float = 0.125
    queue_error_delay_seconds: float = 0.5
    queue_job_timeout_seconds: float = 30.0
    queue_stale_after_minutes: int = 15

    # Logging (LOG_ prefix)
    log_level: str = "INFO"

    # Computed properties
    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Construct the database URL from components unless overridden."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:"
            f"{self.postgres_password.get_secret_value()}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.api_cors_origins.split(",") if o.strip()]

    @property
    def public_domain(self) -> str:
        """Public domain without a trailing slash, for building links."""
        return self.jelly_domain.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    Required fields (secret_key, postgres_password) must be provided via
    environment variables or .env file.
    """
    return Settings()  # type: ignore[call-arg]  # pydantic-settings loads from env


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
