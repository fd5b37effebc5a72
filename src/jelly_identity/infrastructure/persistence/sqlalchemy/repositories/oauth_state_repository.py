"""SQLAlchemy implementation of OAuthStateRepository."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from jelly.domain.shared.time import ensure_tz_aware, ensure_tz_aware_optional, utc_now
from jelly_identity.infrastructure.persistence.sqlalchemy.models import OAuthStateModel
from jelly_identity.repositories import OAuthStateData, OAuthStateRepository

_STATE_COLUMNS = (
    OAuthStateModel.id,
    OAuthStateModel.provider,
    OAuthStateModel.state_hash,
    OAuthStateModel.code_verifier,
    OAuthStateModel.login_hint,
    OAuthStateModel.expires_at,
    OAuthStateModel.consumed_at,
    OAuthStateModel.created_at,
)


class OAuthStateRepositorySQLAlchemy(OAuthStateRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        provider: str,
        state_hash: str,
        code_verifier: str,
        expires_at: datetime,
        login_hint: str | None = None,
    ) -> UUID:
        state_id = uuid4()
        self._session.add(
            OAuthStateModel(
                id=state_id,
                provider=provider,
                state_hash=state_hash,
                code_verifier=code_verifier,
                login_hint=login_hint,
                expires_at=expires_at,
                created_at=utc_now(),
            ),
        )
        await self._session.flush()
        return state_id

    async def consume(
        self,
        provider: str,
        state_hash: str,
        now: datetime,
    ) -> OAuthStateData | None:
        stmt = (
            update(OAuthStateModel)
            .where(
                OAuthStateModel.state_hash == state_hash,
                OAuthStateModel.provider == provider,
                OAuthStateModel.consumed_at.is_(None),
                OAuthStateModel.expires_at > now,
            )
            .values(consumed_at=now)
            .returning(*_STATE_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        row = result.first()
        if row is None:
            return None

        return OAuthStateData(
            id=row.id,
            provider=row.provider,
            state_hash=row.state_hash,
            code_verifier=row.code_verifier,
            login_hint=row.login_hint,
            expires_at=ensure_tz_aware(row.expires_at),
            consumed_at=ensure_tz_aware_optional(row.consumed_at),
            created_at=ensure_tz_aware(row.created_at),
        )

    async def cleanup_expired(self, expired_before: datetime) -> int:
        stmt = delete(OAuthStateModel).where(OAuthStateModel.expires_at < expired_before)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined]
