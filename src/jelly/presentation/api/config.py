"""API configuration adapter.

Bridges the centralized jelly_config settings with the API layer.
"""

from fastapi import Request

from jelly_config.settings import Settings, get_settings

API_VERSION = "1.0.0"
API_V1_PREFIX = "/api/v1"


def get_api_settings(request: Request) -> Settings:
    """Settings the running app was created with, else the process settings."""
    settings = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def oauth_redirect_base(settings: Settings) -> str:
    """Public URL the provider callbacks are mounted under."""
    return f"{settings.public_domain}{API_V1_PREFIX}/oauth"
