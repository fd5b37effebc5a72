"""Typed payloads for queue jobs.

Each job kind is a pydantic model tagged by ``kind``. The queue stores the
JSON dump of the model in its ``message`` column, so new kinds need no
schema migration, while dispatch stays a closed set.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SendVerifyAccountEmail(_Message):
    """Send the verify-account link to an unverified account."""

    kind: Literal["send_verify_account_email"] = "send_verify_account_email"
    email: str


class SendWelcomeAccountEmail(_Message):
    """Greet an account right after it verified its email."""

    kind: Literal["send_welcome_account_email"] = "send_welcome_account_email"
    account_id: UUID


class SendResetPasswordEmail(_Message):
    """Issue a reset token and mail the reset link."""

    kind: Literal["send_reset_password_email"] = "send_reset_password_email"
    email: str


class SendPasswordWasResetEmail(_Message):
    """Notify the owner that their password changed."""

    kind: Literal["send_password_was_reset_email"] = "send_password_was_reset_email"
    email: str


class SendAccountOddRegisterAttemptEmail(_Message):
    """Someone tried to register with an email that already has an account."""

    kind: Literal["send_account_odd_register_attempt_email"] = (
        "send_account_odd_register_attempt_email"
    )
    email: str


JobMessage = Annotated[
    Union[
        SendVerifyAccountEmail,
        SendWelcomeAccountEmail,
        SendResetPasswordEmail,
        SendPasswordWasResetEmail,
        SendAccountOddRegisterAttemptEmail,
    ],
    Field(discriminator="kind"),
]

_message_adapter: TypeAdapter[JobMessage] = TypeAdapter(JobMessage)


def dump_message(message: JobMessage) -> dict[str, Any]:
    """Serialize a message to the JSON-compatible dict stored in the queue."""
    return message.model_dump(mode="json")


def load_message(payload: dict[str, Any]) -> JobMessage:
    """Parse a stored payload back into its typed message.

    Raises
    ------
    pydantic.ValidationError
        If the payload has an unknown ``kind`` or invalid fields.
    """
    return _message_adapter.validate_python(payload)
