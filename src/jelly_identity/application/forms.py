"""Form validation for the account flows.

Each form collects every problem before raising, so the UI can show all
field errors at once. Keys follow the ``account.<field>`` naming used by
the HTML and JSON front ends.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from jelly.domain.shared.exceptions import ValidationError
from jelly_identity.domain.account import Email, InvalidEmailError
from jelly_identity.domain.account.aggregates.account import MAX_NAME_LENGTH
from jelly_identity.exceptions import EMAIL_FIELD, PASSWORD_FIELD
from jelly_identity.services import PasswordStrengthChecker

NAME_FIELD = "account.name"
PASSWORD_CONFIRM_FIELD = "account.password_confirm"

FieldErrors = dict[str, list[str]]


def _validate_email(value: str, errors: FieldErrors) -> Email | None:
    if not value or not value.strip():
        errors[EMAIL_FIELD] = ["Email is required"]
        return None
    try:
        return Email(value)
    except InvalidEmailError:
        errors[EMAIL_FIELD] = ["Enter a valid email address"]
        return None


def _raise_if_any(errors: FieldErrors) -> None:
    if errors:
        raise ValidationError(field_errors=errors)


@dataclass(frozen=True)
class NewAccountForm:
    name: str
    email: str
    password: str

    def validate(self, checker: PasswordStrengthChecker) -> Email:
        """Validate all fields; the password is scored against name and email."""
        errors: FieldErrors = {}

        name = self.name.strip() if self.name else ""
        if not name:
            errors[NAME_FIELD] = ["Name is required"]
        elif len(name) > MAX_NAME_LENGTH:
            errors[NAME_FIELD] = [f"Name cannot exceed {MAX_NAME_LENGTH} characters"]

        email = _validate_email(self.email, errors)

        password_errors = checker.check(self.password, [self.name or "", self.email or ""])
        if password_errors:
            errors[PASSWORD_FIELD] = password_errors

        if errors or email is None:
            raise ValidationError(field_errors=errors)
        return email


@dataclass(frozen=True)
class LoginForm:
    email: str
    password: str

    def validate(self) -> None:
        errors: FieldErrors = {}
        if not self.email or not self.email.strip():
            errors[EMAIL_FIELD] = ["Email is required"]
        if not self.password:
            errors[PASSWORD_FIELD] = ["Password is required"]
        _raise_if_any(errors)


@dataclass(frozen=True)
class EmailForm:
    email: str

    def validate(self) -> Email:
        errors: FieldErrors = {}
        email = _validate_email(self.email, errors)
        if errors or email is None:
            raise ValidationError(field_errors=errors)
        return email


@dataclass(frozen=True)
class ResetPasswordForm:
    password: str
    password_confirm: str

    def validate(
        self,
        checker: PasswordStrengthChecker,
        user_inputs: Iterable[str] = (),
    ) -> None:
        errors: FieldErrors = {}

        password_errors = checker.check(self.password, user_inputs)
        if password_errors:
            errors[PASSWORD_FIELD] = password_errors
        if self.password != self.password_confirm:
            errors[PASSWORD_CONFIRM_FIELD] = ["Passwords must match"]

        _raise_if_any(errors)
