"""Account and identity store interface."""

from abc import ABC, abstractmethod
from typing import Union
from uuid import UUID

from jelly_identity.domain.account.aggregates import Account
from jelly_identity.domain.account.entities import Identity
from jelly_identity.domain.account.value_objects import Email


class AccountRepository(ABC):
    """Persistence for accounts and their linked OAuth identities."""

    @abstractmethod
    async def create_account(
        self,
        email: Union[str, Email],
        name: str,
        password_digest: str | None,
    ) -> Account:
        """Insert a new account.

        Raises
        ------
        DuplicateEmailError
            If the email (case-insensitive) is already registered.
        """

    @abstractmethod
    async def add(self, account: Account) -> Account:
        """Insert a fully built account (same duplicate rules as create)."""

    @abstractmethod
    async def save(self, account: Account) -> None:
        """Persist changes to an existing account."""

    @abstractmethod
    async def find_by_id(self, account_id: UUID) -> Account | None:
        pass

    @abstractmethod
    async def find_by_email(self, email: Union[str, Email]) -> Account | None:
        pass

    @abstractmethod
    async def link_identity(
        self,
        account_id: UUID,
        provider: str,
        username: str,
        name: str | None,
        refresh_token: str | None,
    ) -> Identity:
        """Link or refresh an identity.

        Re-linking to the same account updates name/refresh_token and
        ``updated_at``.

        Raises
        ------
        DuplicateIdentityError
            If ``(provider, lower(username))`` belongs to another account.
        """

    @abstractmethod
    async def find_by_identity(self, provider: str, username: str) -> Account | None:
        pass

    @abstractmethod
    async def list_identities(self, account_id: UUID) -> list[Identity]:
        pass
