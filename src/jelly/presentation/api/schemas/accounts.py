"""Account schemas for request/response models.

Request fields default to empty strings so missing values reach the form
validation and come back as field errors instead of a generic 422.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class RegisterRequest(BaseModel):
    """Request schema for account registration."""

    name: str = ""
    email: str = ""
    password: str = ""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "password": "correct-horse-battery-staple",
            },
        },
    )


class LoginRequest(BaseModel):
    """Request schema for email/password login."""

    email: str = ""
    password: str = ""


class EmailRequest(BaseModel):
    """Request schema for flows that only take an email address."""

    email: str = ""


class ResetPasswordRequest(BaseModel):
    """Request schema for choosing a new password with a reset token."""

    password: str = ""
    password_confirm: str = ""


class AccountResponse(BaseModel):
    """Response schema for the signed-in account."""

    id: UUID
    name: str
    email: str
    is_admin: bool
    has_verified_email: bool
    last_login: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AcceptedResponse(BaseModel):
    """Response for requests whose effect happens in the background."""

    detail: str


class ResetTokenResponse(BaseModel):
    """Response schema for a reset token check."""

    valid: bool
    name: str
