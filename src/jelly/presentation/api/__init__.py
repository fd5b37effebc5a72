"""FastAPI application for the jelly account service."""

from jelly.presentation.api.app import create_app

__all__ = ["create_app"]
