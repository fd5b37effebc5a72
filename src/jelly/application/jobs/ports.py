"""Ports the job handlers and the queue worker depend on."""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from jelly.domain.jobs import JobQueueRepository
    from jelly_identity.application.services import OneTimeTokenService
    from jelly_identity.domain.account import AccountRepository


class EmailSender(Protocol):
    """Delivers a rendered template to one recipient."""

    async def send(self, to: str, template: str, context: dict[str, Any]) -> None:
        """Send ``template`` to ``to``; raise ExternalServiceError on failure."""
        ...


class JobRepositories(Protocol):
    """Repositories sharing one transaction.

    Used as an async context manager: leaving the block without ``commit``
    rolls the transaction back.
    """

    async def __aenter__(self) -> JobRepositories:
        ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        ...

    async def commit(self) -> None:
        """Commit the transaction; raise StorageError on failure."""
        ...

    def job_queue(self) -> JobQueueRepository:
        ...

    def account_repository(self) -> AccountRepository:
        ...

    def token_service(self) -> OneTimeTokenService:
        ...
