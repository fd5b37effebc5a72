"""SQLAlchemy implementation of AccountRepository."""

import logging
from typing import Union
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jelly.domain.shared.time import ensure_tz_aware, ensure_tz_aware_optional, utc_now
from jelly_identity.domain.account import (
    Account,
    AccountRepository,
    Email,
    Identity,
)
from jelly_identity.exceptions import DuplicateEmailError, DuplicateIdentityError
from jelly_identity.infrastructure.persistence.sqlalchemy.models import (
    AccountModel,
    IdentityModel,
)

logger = logging.getLogger(__name__)


def _is_unique_violation(error: IntegrityError) -> bool:
    text = str(error).lower()
    return "unique" in text or "duplicate key" in text


class AccountRepositorySQLAlchemy(AccountRepository):
    """SQLAlchemy implementation of the AccountRepository interface.

    Every write sets ``updated_at`` itself; nothing relies on triggers.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_account(
        self,
        email: Union[str, Email],
        name: str,
        password_digest: str | None,
    ) -> Account:
        account = Account(name=name, email=email, password_digest=password_digest)
        return await self.add(account)

    async def add(self, account: Account) -> Account:
        if await self._find_model_by_email(account.email) is not None:
            raise DuplicateEmailError(account.email)

        now = utc_now()
        model = self._map_to_model(account)
        model.created_at = account.created_at
        model.updated_at = now
        try:
            self._session.add(model)
            await self._session.flush()
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateEmailError(account.email) from e
            raise

        logger.info("Created account: %s", account.id)
        return self._map_to_domain(model)

    async def save(self, account: Account) -> None:
        model = await self._find_model_by_id(account.id)
        if model is None:
            await self.add(account)
            return

        model.name = account.name
        model.email = account.email
        model.password = account.password_digest
        model.is_active = account.is_active
        model.is_admin = account.is_admin
        model.has_verified_email = account.has_verified_email
        model.last_login = account.last_login
        model.updated_at = utc_now()
        try:
            await self._session.flush()
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateEmailError(account.email) from e
            raise
        logger.debug("Updated account: %s", account.id)

    async def find_by_id(self, account_id: UUID) -> Account | None:
        model = await self._find_model_by_id(account_id)
        if model is None:
            return None
        return self._map_to_domain(model)

    async def find_by_email(self, email: Union[str, Email]) -> Account | None:
        email_value = email.value if isinstance(email, Email) else Email(email).value
        model = await self._find_model_by_email(email_value)
        if model is None:
            return None
        return self._map_to_domain(model)

    async def link_identity(
        self,
        account_id: UUID,
        provider: str,
        username: str,
        name: str | None,
        refresh_token: str | None,
    ) -> Identity:
        existing = await self._find_identity_model(provider, username)
        now = utc_now()

        if existing is not None:
            if existing.account_id != account_id:
                raise DuplicateIdentityError(provider, username)
            existing.name = name
            existing.refresh_token = refresh_token
            existing.updated_at = now
            await self._session.flush()
            logger.debug("Refreshed %s identity for account %s", provider, account_id)
            return self._map_identity(existing)

        model = IdentityModel(
            id=uuid4(),
            account_id=account_id,
            provider=provider,
            username=username,
            name=name,
            refresh_token=refresh_token,
            created_at=now,
            updated_at=now,
        )
        try:
            self._session.add(model)
            await self._session.flush()
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateIdentityError(provider, username) from e
            raise

        logger.info("Linked %s identity to account %s", provider, account_id)
        return self._map_identity(model)

    async def find_by_identity(self, provider: str, username: str) -> Account | None:
        stmt = (
            select(AccountModel)
            .join(IdentityModel, IdentityModel.account_id == AccountModel.id)
            .where(
                IdentityModel.provider == provider,
                func.lower(IdentityModel.username) == username.lower(),
            )
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return self._map_to_domain(model)

    async def list_identities(self, account_id: UUID) -> list[Identity]:
        stmt = (
            select(IdentityModel)
            .where(IdentityModel.account_id == account_id)
            .order_by(IdentityModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._map_identity(model) for model in result.scalars().all()]

    async def _find_model_by_id(self, account_id: UUID) -> AccountModel | None:
        stmt = select(AccountModel).where(AccountModel.id == account_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _find_model_by_email(self, email: str) -> AccountModel | None:
        stmt = select(AccountModel).where(AccountModel.email == email)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _find_identity_model(
        self,
        provider: str,
        username: str,
    ) -> IdentityModel | None:
        stmt = select(IdentityModel).where(
            IdentityModel.provider == provider,
            func.lower(IdentityModel.username) == username.lower(),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _map_to_domain(self, model: AccountModel) -> Account:
        return Account.reconstitute(
            id=model.id,
            name=model.name,
            email=model.email,
            password_digest=model.password,
            is_active=model.is_active,
            is_admin=model.is_admin,
            has_verified_email=model.has_verified_email,
            last_login=ensure_tz_aware_optional(model.last_login),
            created_at=ensure_tz_aware(model.created_at),
            updated_at=ensure_tz_aware(model.updated_at),
        )

    def _map_to_model(self, account: Account) -> AccountModel:
        return AccountModel(
            id=account.id,
            name=account.name,
            email=account.email,
            password=account.password_digest,
            is_active=account.is_active,
            is_admin=account.is_admin,
            has_verified_email=account.has_verified_email,
            last_login=account.last_login,
        )

    def _map_identity(self, model: IdentityModel) -> Identity:
        return Identity(
            id=model.id,
            account_id=model.account_id,
            provider=model.provider,
            username=model.username,
            name=model.name,
            refresh_token=model.refresh_token,
            created_at=ensure_tz_aware(model.created_at),
            updated_at=ensure_tz_aware(model.updated_at),
        )
