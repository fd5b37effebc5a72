"""Identity schemas and data structures.

Simple data classes used for transferring identity data between
components.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class SessionUser:
    """The signed-in user as carried in the session cookie.

    Attributes
    ----------
    id
        Account identifier
    name
        Display name, for greeting without a database round trip
    is_admin
        Whether the account has admin rights
    """

    id: UUID
    name: str
    is_admin: bool = False


@dataclass(frozen=True)
class SessionPayload:
    """Decoded session cookie."""

    user: SessionUser
    issued_at: datetime
    expires_at: datetime

    def is_expired(self) -> bool:
        """Check if the session has expired."""
        return datetime.now(tz=self.expires_at.tzinfo) > self.expires_at
