"""SQLAlchemy repository factory and per-transaction scope."""

from __future__ import annotations

import logging
from types import TracebackType

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jelly.domain.shared.exceptions import StorageError
from jelly.infrastructure.persistence.sqlalchemy.repositories.job_queue_repository import (
    JobQueueRepositorySQLAlchemy,
)
from jelly_identity.application.services import OneTimeTokenService
from jelly_identity.infrastructure.persistence.sqlalchemy.repositories import (
    AccountRepositorySQLAlchemy,
    OAuthStateRepositorySQLAlchemy,
    OneTimeTokenRepositorySQLAlchemy,
)

logger = logging.getLogger(__name__)


class SQLAlchemyRepositoryFactory:
    """Creates repositories that share one session."""

    def __init__(self, session: AsyncSession):
        self._session = session

        # Cached instances (created on demand)
        self._job_queue: JobQueueRepositorySQLAlchemy | None = None
        self._account_repo: AccountRepositorySQLAlchemy | None = None
        self._token_repo: OneTimeTokenRepositorySQLAlchemy | None = None
        self._oauth_state_repo: OAuthStateRepositorySQLAlchemy | None = None

    @property
    def session(self) -> AsyncSession:
        return self._session

    def job_queue(self) -> JobQueueRepositorySQLAlchemy:
        if self._job_queue is None:
            self._job_queue = JobQueueRepositorySQLAlchemy(self._session)
        return self._job_queue

    def account_repository(self) -> AccountRepositorySQLAlchemy:
        if self._account_repo is None:
            self._account_repo = AccountRepositorySQLAlchemy(self._session)
        return self._account_repo

    def token_repository(self) -> OneTimeTokenRepositorySQLAlchemy:
        if self._token_repo is None:
            self._token_repo = OneTimeTokenRepositorySQLAlchemy(self._session)
        return self._token_repo

    def oauth_state_repository(self) -> OAuthStateRepositorySQLAlchemy:
        if self._oauth_state_repo is None:
            self._oauth_state_repo = OAuthStateRepositorySQLAlchemy(self._session)
        return self._oauth_state_repo

    def token_service(self) -> OneTimeTokenService:
        return OneTimeTokenService(self.token_repository())

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            logger.warning("Commit failed: %s", e)
            raise StorageError() from e


class SessionScope(SQLAlchemyRepositoryFactory):
    """Opens a session on enter and closes it on exit.

    Anything not committed inside the block is rolled back.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        super().__init__(session_maker())

    async def __aenter__(self) -> SessionScope:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if self._session.in_transaction():
                await self._session.rollback()
        finally:
            await self._session.close()
