"""API routers."""

from jelly.presentation.api.routers.accounts import router as accounts_router
from jelly.presentation.api.routers.oauth import router as oauth_router

__all__ = ["accounts_router", "oauth_router"]
