"""Account aggregate."""

from datetime import datetime
from typing import Union
from uuid import UUID, uuid4

from jelly.domain.shared.time import utc_now
from jelly_identity.domain.account.exceptions import InvalidNameError
from jelly_identity.domain.account.value_objects.email import Email

MAX_NAME_LENGTH = 255


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidNameError("Name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidNameError("Name is too long")
    return cleaned


class Account:
    """
    Account aggregate root.

    Holds the local credentials and flags. Accounts are never hard-deleted;
    ``is_active`` switches them off. OAuth-only accounts have no password
    digest.
    """

    def __init__(
        self,
        name: str,
        email: Union[str, Email],
        password_digest: str | None = None,
        id: UUID | None = None,
        is_active: bool = True,
        is_admin: bool = False,
        has_verified_email: bool = False,
        last_login: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self._id = id or uuid4()
        self._name = _clean_name(name)
        self._email = email if isinstance(email, Email) else Email(email)
        self._password_digest = password_digest
        self._is_active = is_active
        self._is_admin = is_admin
        self._has_verified_email = has_verified_email
        self._last_login = last_login
        self._created_at = created_at or utc_now()
        self._updated_at = updated_at or self._created_at

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def email(self) -> str:
        return self._email.value

    @property
    def password_digest(self) -> str | None:
        return self._password_digest

    @property
    def has_password(self) -> bool:
        return bool(self._password_digest)

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def is_admin(self) -> bool:
        return self._is_admin

    @property
    def has_verified_email(self) -> bool:
        return self._has_verified_email

    @property
    def last_login(self) -> datetime | None:
        return self._last_login

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def _touch(self) -> None:
        self._updated_at = utc_now()

    def rename(self, name: str) -> None:
        self._name = _clean_name(name)
        self._touch()

    def change_password_digest(self, digest: str) -> None:
        self._password_digest = digest
        self._touch()

    def mark_email_verified(self) -> None:
        self._has_verified_email = True
        self._touch()

    def record_login(self) -> None:
        self._last_login = utc_now()
        self._touch()

    def deactivate(self) -> None:
        self._is_active = False
        self._touch()

    def activate(self) -> None:
        self._is_active = True
        self._touch()

    def user_inputs(self) -> list[str]:
        """Personal strings a password should not be built from."""
        return [self._name, self._email.value]

    @classmethod
    def create(
        cls,
        name: str,
        email: Union[str, Email],
        password_digest: str,
    ) -> "Account":
        return cls(name=name, email=email, password_digest=password_digest)

    @classmethod
    def create_oauth(
        cls,
        name: str,
        email: Union[str, Email],
        email_verified: bool = False,
    ) -> "Account":
        account = cls(
            name=name,
            email=email,
            password_digest=None,
            has_verified_email=email_verified,
        )
        account.record_login()
        return account

    @classmethod
    def reconstitute(
        cls,
        id: UUID,
        name: str,
        email: Union[str, Email],
        password_digest: str | None,
        is_active: bool,
        is_admin: bool,
        has_verified_email: bool,
        last_login: datetime | None,
        created_at: datetime,
        updated_at: datetime,
    ) -> "Account":
        return cls(
            id=id,
            name=name,
            email=email,
            password_digest=password_digest,
            is_active=is_active,
            is_admin=is_admin,
            has_verified_email=has_verified_email,
            last_login=last_login,
            created_at=created_at,
            updated_at=updated_at,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"Account(id={self._id}, email={self._email.value})"
