"""Account flows: registration, login, email verification and password reset."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from jelly.domain.jobs import (
    SendAccountOddRegisterAttemptEmail,
    SendPasswordWasResetEmail,
    SendResetPasswordEmail,
    SendVerifyAccountEmail,
    SendWelcomeAccountEmail,
)
from jelly_identity.application.forms import (
    EmailForm,
    LoginForm,
    NewAccountForm,
    ResetPasswordForm,
)
from jelly_identity.domain.account import Account, Email, InvalidEmailError
from jelly_identity.exceptions import (
    CredentialError,
    DigestDecodeError,
    TokenNotFoundError,
)
from jelly_identity.repositories import TokenPurpose

if TYPE_CHECKING:
    from jelly.domain.jobs import JobQueueRepository
    from jelly_identity.application.services.token_service import OneTimeTokenService
    from jelly_identity.domain.account import AccountRepository
    from jelly_identity.services import PasswordHashingService, PasswordStrengthChecker

logger = logging.getLogger(__name__)


class AccountService:
    """
    Application service for the email/password account lifecycle.

    Emails are never sent inline: every flow enqueues a job in the same
    transaction as its state change, and the worker delivers it. Flows that
    take an email address behave identically whether or not an account
    exists, so responses cannot be used to discover registered addresses.
    """

    def __init__(  # noqa: PLR0913
        self,
        account_repository: AccountRepository,
        token_service: OneTimeTokenService,
        job_queue: JobQueueRepository,
        password_service: PasswordHashingService,
        strength_checker: PasswordStrengthChecker,
    ):
        self._account_repo = account_repository
        self._token_service = token_service
        self._job_queue = job_queue
        self._password_service = password_service
        self._strength_checker = strength_checker

    async def register(self, form: NewAccountForm) -> Account | None:
        """Create an unverified account and queue its verification email.

        Returns
        -------
        The new account, or None when the email was already registered. In
        that case the owner gets an "odd registration attempt" email instead,
        and callers must respond exactly as for a successful registration.

        Raises
        ------
        ValidationError
            If any field is invalid or the password is too weak
        """
        email = form.validate(self._strength_checker)

        existing = await self._account_repo.find_by_email(email)
        if existing is not None:
            logger.info("Registration attempted for existing account %s", existing.id)
            await self._job_queue.push(
                SendAccountOddRegisterAttemptEmail(email=existing.email),
            )
            return None

        digest = self._password_service.hash(form.password)
        account = await self._account_repo.create_account(email, form.name, digest)
        await self._job_queue.push(SendVerifyAccountEmail(email=account.email))
        logger.info("Registered account %s", account.id)
        return account

    async def authenticate(self, form: LoginForm) -> Account:
        """Check credentials and record the login.

        Upgrades the stored digest when its parameters are outdated.

        Raises
        ------
        ValidationError
            If email or password is missing
        CredentialError
            For any reason the login cannot succeed
        """
        form.validate()

        try:
            email = Email(form.email)
        except InvalidEmailError as e:
            raise CredentialError() from e

        account = await self._account_repo.find_by_email(email)
        if account is None or account.password_digest is None:
            logger.info("Failed login: no password account for submitted email")
            raise CredentialError()

        digest = account.password_digest
        try:
            matches = self._password_service.verify(form.password, digest)
            outdated = matches and self._password_service.needs_rehash(digest)
        except DigestDecodeError as e:
            logger.error("Malformed password digest for account %s", account.id)
            raise CredentialError() from e

        if not matches:
            logger.info("Failed login for account %s: wrong password", account.id)
            raise CredentialError()
        if not account.is_active:
            logger.info("Failed login for account %s: inactive", account.id)
            raise CredentialError()

        if outdated:
            account.change_password_digest(self._password_service.hash(form.password))
            logger.info("Upgraded password digest for account %s", account.id)

        account.record_login()
        await self._account_repo.save(account)
        return account

    async def verify_email(self, raw_token: str) -> Account:
        """Redeem a verification token and mark the email verified.

        Raises
        ------
        TokenError
            If the token is unknown, expired or already used
        """
        account_id = await self._token_service.redeem(raw_token, TokenPurpose.VERIFY_EMAIL)
        account = await self._account_repo.find_by_id(account_id)
        if account is None:
            raise TokenNotFoundError()

        account.mark_email_verified()
        account.record_login()
        await self._account_repo.save(account)
        await self._job_queue.push(SendWelcomeAccountEmail(account_id=account.id))
        logger.info("Verified email for account %s", account.id)
        return account

    async def request_verification(self, form: EmailForm) -> None:
        """Queue a fresh verification email; a no-op job for unknown emails."""
        email = form.validate()
        await self._job_queue.push(SendVerifyAccountEmail(email=email.value))

    async def request_password_reset(self, form: EmailForm) -> None:
        """Queue a reset email; the worker decides whether one is sent."""
        email = form.validate()
        await self._job_queue.push(SendResetPasswordEmail(email=email.value))

    async def check_reset_token(self, raw_token: str) -> Account:
        """Return the account a reset token belongs to, without consuming it."""
        account_id = await self._token_service.peek(raw_token, TokenPurpose.RESET_PASSWORD)
        account = await self._account_repo.find_by_id(account_id)
        if account is None:
            raise TokenNotFoundError()
        return account

    async def reset_password(self, raw_token: str, form: ResetPasswordForm) -> Account:
        """Set a new password using a reset token.

        The form is validated before the token is consumed, so a rejected
        password leaves the link usable.

        Raises
        ------
        ValidationError
            If the passwords differ or the new one is too weak
        TokenError
            If the token is unknown, expired or already used
        """
        account = await self.check_reset_token(raw_token)
        form.validate(self._strength_checker, account.user_inputs())

        await self._token_service.redeem(raw_token, TokenPurpose.RESET_PASSWORD)
        await self._token_service.revoke_all(account.id, TokenPurpose.RESET_PASSWORD)

        account.change_password_digest(self._password_service.hash(form.password))
        account.record_login()
        await self._account_repo.save(account)
        await self._job_queue.push(SendPasswordWasResetEmail(email=account.email))
        logger.info("Password reset completed for account %s", account.id)
        return account
