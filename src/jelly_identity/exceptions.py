"""Identity and authentication exceptions.

These exceptions are raised by the jelly_identity package and handled at
the API boundary or by the queue worker. Messages are safe to show to end
users; anything that could help account enumeration stays generic.
"""

from typing import Any

from jelly.domain.shared.exceptions import (
    ConflictError,
    DomainException,
    EntityNotFoundError,
    ErrorCode,
    ValidationError,
)

PASSWORD_FIELD = "account.password"
EMAIL_FIELD = "account.email"


class AuthError(DomainException):
    """Base exception for all authentication errors."""

    def __init__(
        self,
        message: str = "Authentication error",
        code: ErrorCode = ErrorCode.INVALID_CREDENTIALS,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


class CredentialError(AuthError):
    """Raised when email or password is incorrect during login."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, ErrorCode.INVALID_CREDENTIALS)


class DigestDecodeError(AuthError):
    """Raised when a stored password digest cannot be parsed.

    Distinct from a wrong password: it points at corrupt data, not at the
    person logging in.
    """

    def __init__(self, message: str = "Stored password digest is malformed"):
        super().__init__(message, ErrorCode.INTERNAL_ERROR)


class InvalidSessionError(AuthError):
    """Raised when a session cookie is missing, tampered with or expired."""

    def __init__(self, message: str = "Not signed in"):
        super().__init__(message, ErrorCode.INVALID_SESSION)


class WeakPasswordError(ValidationError):
    """Raised when a password doesn't meet strength requirements."""

    def __init__(self, errors: list[str], field: str = PASSWORD_FIELD):
        super().__init__(
            "Password does not meet requirements",
            ErrorCode.WEAK_PASSWORD,
            field_errors={field: errors},
        )


class TokenError(DomainException):
    """Base for one-time token failures; the user should re-request."""

    def __init__(
        self,
        message: str = "This link is invalid or has expired",
        code: ErrorCode = ErrorCode.INVALID_TOKEN,
    ):
        super().__init__(message, code)


class TokenNotFoundError(TokenError):
    def __init__(self):
        super().__init__("This link is invalid or has expired", ErrorCode.INVALID_TOKEN)


class TokenExpiredError(TokenError):
    def __init__(self):
        super().__init__("This link has expired", ErrorCode.TOKEN_EXPIRED)


class TokenAlreadyConsumedError(TokenError):
    def __init__(self):
        super().__init__(
            "This link has already been used",
            ErrorCode.TOKEN_ALREADY_CONSUMED,
        )


class DuplicateError(ConflictError):
    """Base for uniqueness violations, surfaced as a field error."""

    def __init__(self, message: str, code: ErrorCode, field: str):
        super().__init__(message, code)
        self.field = field

    @property
    def field_errors(self) -> dict[str, list[str]]:
        return {self.field: [self.message]}


class DuplicateEmailError(DuplicateError):
    """Email already registered (compared case-insensitively)."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(
            "An account with this email already exists",
            ErrorCode.DUPLICATE_EMAIL,
            EMAIL_FIELD,
        )


class DuplicateIdentityError(DuplicateError):
    """The external identity is already linked to another account."""

    def __init__(self, provider: str, username: str):
        self.provider = provider
        self.username = username
        super().__init__(
            f"This {provider} account is already linked to another account",
            ErrorCode.DUPLICATE_IDENTITY,
            "identity",
        )


class IdentityConflictError(ConflictError):
    """OAuth login for an identity owned by a different signed-in account."""

    def __init__(self, provider: str):
        super().__init__(
            f"This {provider} account belongs to a different user",
            ErrorCode.IDENTITY_CONFLICT,
        )


class StateMismatchError(AuthError):
    """OAuth callback state was never issued, already used or expired."""

    def __init__(self, message: str = "Login could not be completed, please try again"):
        super().__init__(message, ErrorCode.OAUTH_STATE_MISMATCH)


class UnknownProviderError(EntityNotFoundError):
    """Raised for a provider name that is not configured."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown login provider: {provider}", ErrorCode.UNKNOWN_PROVIDER)


class AccountNotFoundError(EntityNotFoundError):
    """Account not found."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}", ErrorCode.ACCOUNT_NOT_FOUND)
