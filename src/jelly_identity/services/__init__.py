"""Identity services - password hashing, strength scoring and sessions."""

from jelly_identity.services.password_policy import (
    ALPHANUMERIC_HYPHEN,
    MIXED_CLASSES,
    PasswordPattern,
    PasswordPolicy,
    PasswordScore,
    PasswordStrengthChecker,
    StrengthResult,
    split_inputs,
)
from jelly_identity.services.password_service import PasswordHashingService
from jelly_identity.services.session_service import SessionService

__all__ = [
    "ALPHANUMERIC_HYPHEN",
    "MIXED_CLASSES",
    "PasswordHashingService",
    "PasswordPattern",
    "PasswordPolicy",
    "PasswordScore",
    "PasswordStrengthChecker",
    "SessionService",
    "StrengthResult",
    "split_inputs",
]
