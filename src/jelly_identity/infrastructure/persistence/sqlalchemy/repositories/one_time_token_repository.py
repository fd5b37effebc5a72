"""SQLAlchemy implementation of OneTimeTokenRepository."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jelly.domain.shared.time import ensure_tz_aware, ensure_tz_aware_optional, utc_now
from jelly_identity.infrastructure.persistence.sqlalchemy.models import (
    OneTimeTokenModel,
)
from jelly_identity.repositories import (
    OneTimeTokenData,
    OneTimeTokenRepository,
    TokenPurpose,
)


class OneTimeTokenRepositorySQLAlchemy(OneTimeTokenRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> UUID:
        token_id = uuid4()
        model = OneTimeTokenModel(
            id=token_id,
            account_id=account_id,
            purpose=purpose.value,
            token_hash=token_hash,
            expires_at=expires_at,
            created_at=utc_now(),
        )
        self._session.add(model)
        await self._session.flush()
        return token_id

    async def consume(
        self,
        token_hash: str,
        purpose: TokenPurpose,
        now: datetime,
    ) -> UUID | None:
        stmt = (
            update(OneTimeTokenModel)
            .where(
                OneTimeTokenModel.token_hash == token_hash,
                OneTimeTokenModel.purpose == purpose.value,
                OneTimeTokenModel.consumed_at.is_(None),
                OneTimeTokenModel.expires_at > now,
            )
            .values(consumed_at=now)
            .returning(OneTimeTokenModel.account_id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row.account_id

    async def find_by_hash(
        self,
        token_hash: str,
        purpose: TokenPurpose,
    ) -> OneTimeTokenData | None:
        stmt = select(OneTimeTokenModel).where(
            OneTimeTokenModel.token_hash == token_hash,
            OneTimeTokenModel.purpose == purpose.value,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return OneTimeTokenData(
            id=model.id,
            account_id=model.account_id,
            purpose=TokenPurpose(model.purpose),
            token_hash=model.token_hash,
            expires_at=ensure_tz_aware(model.expires_at),
            consumed_at=ensure_tz_aware_optional(model.consumed_at),
            created_at=ensure_tz_aware(model.created_at),
        )

    async def invalidate_all_for_account(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
    ) -> int:
        stmt = (
            update(OneTimeTokenModel)
            .where(
                OneTimeTokenModel.account_id == account_id,
                OneTimeTokenModel.purpose == purpose.value,
                OneTimeTokenModel.consumed_at.is_(None),
            )
            .values(consumed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined]

    async def count_recent_for_account(
        self,
        account_id: UUID,
        purpose: TokenPurpose,
        since: datetime,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(OneTimeTokenModel)
            .where(
                OneTimeTokenModel.account_id == account_id,
                OneTimeTokenModel.purpose == purpose.value,
                OneTimeTokenModel.created_at >= since,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def cleanup_expired(self, expired_before: datetime) -> int:
        stmt = delete(OneTimeTokenModel).where(OneTimeTokenModel.expires_at < expired_before)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined]
