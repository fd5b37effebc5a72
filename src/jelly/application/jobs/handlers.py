"""Handlers for every queue job kind.

Handlers look the account up themselves and return quietly when it is gone
or the action no longer applies, so a job delivered twice does no harm.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from jelly.domain.jobs import (
    JobMessage,
    SendAccountOddRegisterAttemptEmail,
    SendPasswordWasResetEmail,
    SendResetPasswordEmail,
    SendVerifyAccountEmail,
    SendWelcomeAccountEmail,
)
from jelly_identity.domain.account import InvalidEmailError
from jelly_identity.repositories import TokenPurpose

if TYPE_CHECKING:
    from jelly.application.jobs.ports import EmailSender
    from jelly_config.settings import Settings
    from jelly_identity.application.services import OneTimeTokenService
    from jelly_identity.domain.account import Account, AccountRepository

logger = logging.getLogger(__name__)

VERIFY_ACCOUNT_SUBJECT = "Verify your new account"
WELCOME_SUBJECT = "Welcome to the service"
RESET_PASSWORD_SUBJECT = "Reset your account password"
PASSWORD_WAS_RESET_SUBJECT = "Your Password Was Reset"
ODD_REGISTER_ATTEMPT_SUBJECT = "Did you want to reset your password?"

RESET_WINDOW = timedelta(days=1)


@dataclass(frozen=True)
class MailLinks:
    """Public URLs and token lifetimes used when composing emails."""

    domain: str
    verify_token_ttl: timedelta = timedelta(hours=24)
    reset_token_ttl: timedelta = timedelta(hours=1)
    max_resets_per_day: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> MailLinks:
        return cls(
            domain=settings.public_domain,
            verify_token_ttl=timedelta(hours=settings.verify_token_ttl_hours),
            reset_token_ttl=timedelta(hours=settings.reset_token_ttl_hours),
            max_resets_per_day=settings.max_resets_per_day,
        )

    def verify_url(self, token: str) -> str:
        return f"{self.domain}/accounts/verify/{token}"

    def reset_url(self, token: str) -> str:
        return f"{self.domain}/accounts/reset/{token}"

    @property
    def reset_request_url(self) -> str:
        return f"{self.domain}/accounts/reset"


class JobDispatcher:
    """Routes a typed job message to the handler for its kind."""

    def __init__(
        self,
        account_repository: AccountRepository,
        token_service: OneTimeTokenService,
        email_sender: EmailSender,
        links: MailLinks,
    ):
        self._account_repo = account_repository
        self._token_service = token_service
        self._email = email_sender
        self._links = links
        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "send_verify_account_email": self.send_verify_account_email,
            "send_welcome_account_email": self.send_welcome_account_email,
            "send_reset_password_email": self.send_reset_password_email,
            "send_password_was_reset_email": self.send_password_was_reset_email,
            "send_account_odd_register_attempt_email": (
                self.send_account_odd_register_attempt_email
            ),
        }

    async def dispatch(self, message: JobMessage) -> None:
        handler = self._handlers[message.kind]
        await handler(message)

    async def send_verify_account_email(self, message: SendVerifyAccountEmail) -> None:
        account = await self._find_by_email(message.email)
        if account is None:
            logger.info("Skipping verify email: no account for address")
            return
        if account.has_verified_email:
            logger.info("Skipping verify email: account %s already verified", account.id)
            return

        token = await self._token_service.issue(
            account.id,
            TokenPurpose.VERIFY_EMAIL,
            self._links.verify_token_ttl,
        )
        await self._email.send(
            account.email,
            "verify-account",
            {
                "subject": VERIFY_ACCOUNT_SUBJECT,
                "name": account.name,
                "action_url": self._links.verify_url(token),
            },
        )

    async def send_welcome_account_email(self, message: SendWelcomeAccountEmail) -> None:
        account = await self._account_repo.find_by_id(message.account_id)
        if account is None:
            logger.info("Skipping welcome email: account %s is gone", message.account_id)
            return

        await self._email.send(
            account.email,
            "welcome",
            {"subject": WELCOME_SUBJECT, "name": account.name},
        )

    async def send_reset_password_email(self, message: SendResetPasswordEmail) -> None:
        account = await self._find_by_email(message.email)
        if account is None or not account.is_active:
            logger.info("Skipping reset email: no active account for address")
            return

        issued = await self._token_service.count_issued_since(
            account.id,
            TokenPurpose.RESET_PASSWORD,
            RESET_WINDOW,
        )
        if issued >= self._links.max_resets_per_day:
            logger.warning(
                "Reset email limit reached for account %s (%d today)",
                account.id,
                issued,
            )
            return

        # Only the newest link stays usable
        await self._token_service.revoke_all(account.id, TokenPurpose.RESET_PASSWORD)
        token = await self._token_service.issue(
            account.id,
            TokenPurpose.RESET_PASSWORD,
            self._links.reset_token_ttl,
        )
        await self._email.send(
            account.email,
            "reset-password",
            {
                "subject": RESET_PASSWORD_SUBJECT,
                "name": account.name,
                "action_url": self._links.reset_url(token),
            },
        )

    async def send_password_was_reset_email(
        self,
        message: SendPasswordWasResetEmail,
    ) -> None:
        await self._email.send(
            message.email,
            "password-was-reset",
            {"subject": PASSWORD_WAS_RESET_SUBJECT},
        )

    async def send_account_odd_register_attempt_email(
        self,
        message: SendAccountOddRegisterAttemptEmail,
    ) -> None:
        account = await self._find_by_email(message.email)
        if account is None:
            logger.info("Skipping odd registration email: no account for address")
            return

        await self._email.send(
            account.email,
            "odd-registration-attempt",
            {
                "subject": ODD_REGISTER_ATTEMPT_SUBJECT,
                "name": account.name,
                "action_url": self._links.reset_request_url,
            },
        )

    async def _find_by_email(self, email: str) -> Account | None:
        try:
            return await self._account_repo.find_by_email(email)
        except InvalidEmailError:
            return None
