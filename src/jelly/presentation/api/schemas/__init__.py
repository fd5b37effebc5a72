"""Request and response schemas for the API."""

from jelly.presentation.api.schemas.accounts import (
    AcceptedResponse,
    AccountResponse,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenResponse,
)

__all__ = [
    "AcceptedResponse",
    "AccountResponse",
    "EmailRequest",
    "LoginRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "ResetTokenResponse",
]
