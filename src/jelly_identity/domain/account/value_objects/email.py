"""Email value object."""

import re
from dataclasses import dataclass

from jelly_identity.domain.account.exceptions import InvalidEmailError

MAX_EMAIL_LENGTH = 254

# One @, non-empty local part, dotted domain
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class Email:
    """A normalized (trimmed, lowercased) email address.

    Lowercasing here is what makes account email uniqueness
    case-insensitive: the store only ever sees the normalized form.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if not normalized:
            raise InvalidEmailError("Email is required")
        if len(normalized) > MAX_EMAIL_LENGTH:
            raise InvalidEmailError("Email is too long")
        if not _EMAIL_PATTERN.match(normalized):
            raise InvalidEmailError(f"Invalid email format: {self.value}")
        object.__setattr__(self, "value", normalized)

    @property
    def domain(self) -> str:
        return self.value.rsplit("@", 1)[1]

    def __str__(self) -> str:
        return self.value
