"""SQLAlchemy implementation of JobQueueRepository."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jelly.domain.jobs import (
    BackoffPolicy,
    Job,
    JobMessage,
    JobQueueRepository,
    JobStatus,
    dump_message,
)
from jelly.domain.shared.exceptions import StorageError
from jelly.domain.shared.time import ensure_tz_aware, utc_now
from jelly.infrastructure.persistence.sqlalchemy.models import QueueJobModel

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000

_JOB_COLUMNS = (
    QueueJobModel.id,
    QueueJobModel.message,
    QueueJobModel.status,
    QueueJobModel.scheduled_for,
    QueueJobModel.failed_attempts,
    QueueJobModel.created_at,
    QueueJobModel.updated_at,
    QueueJobModel.claimed_by,
    QueueJobModel.last_error,
)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.warning("Queue %s failed: %s", operation, e)
        raise StorageError(f"Queue {operation} failed") from e


class JobQueueRepositorySQLAlchemy(JobQueueRepository):
    """Queue backed by the ``queue`` table.

    Every state change is one conditional UPDATE, guarded on the current
    status, so two pollers or two failure reports can never both win.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def push(
        self,
        message: JobMessage,
        scheduled_for: datetime | None = None,
    ) -> UUID:
        now = utc_now()
        model = QueueJobModel(
            id=uuid4(),
            message=dump_message(message),
            status=int(JobStatus.PENDING),
            failed_attempts=0,
            scheduled_for=scheduled_for or now,
            created_at=now,
            updated_at=now,
        )
        with _storage_errors("push"):
            self._session.add(model)
            await self._session.flush()

        logger.debug("Enqueued job %s (%s)", model.id, message.kind)
        return model.id

    async def claim(self, limit: int, worker_id: str) -> list[Job]:
        if limit <= 0:
            return []

        now = utc_now()
        due = (
            select(QueueJobModel.id)
            .where(
                QueueJobModel.status == int(JobStatus.PENDING),
                QueueJobModel.scheduled_for <= now,
            )
            .order_by(
                QueueJobModel.scheduled_for,
                QueueJobModel.created_at,
                QueueJobModel.id,
            )
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        stmt = (
            update(QueueJobModel)
            .where(
                QueueJobModel.id.in_(due),
                QueueJobModel.status == int(JobStatus.PENDING),
            )
            .values(
                status=int(JobStatus.PROCESSING),
                claimed_by=worker_id,
                updated_at=now,
            )
            .returning(*_JOB_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        with _storage_errors("claim"):
            result = await self._session.execute(stmt)
            rows = result.all()

        jobs = [self._map_row(row) for row in rows]
        jobs.sort(key=lambda job: (job.scheduled_for, job.created_at, str(job.id)))
        if jobs:
            logger.debug("Worker %s claimed %d job(s)", worker_id, len(jobs))
        return jobs

    async def complete(self, job_id: UUID) -> bool:
        stmt = (
            update(QueueJobModel)
            .where(
                QueueJobModel.id == job_id,
                QueueJobModel.status == int(JobStatus.PROCESSING),
            )
            .values(status=int(JobStatus.DONE), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        with _storage_errors("complete"):
            result = await self._session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def fail(
        self,
        job: Job,
        error: str,
        policy: BackoffPolicy,
        *,
        terminal: bool = False,
    ) -> JobStatus | None:
        now = utc_now()
        attempts = job.failed_attempts + 1
        values: dict[str, Any] = {
            "failed_attempts": QueueJobModel.failed_attempts + 1,
            "last_error": error[:MAX_ERROR_LENGTH],
            "claimed_by": None,
            "updated_at": now,
        }
        if terminal or policy.is_exhausted(attempts):
            new_status = JobStatus.FAILED
        else:
            new_status = JobStatus.PENDING
            values["scheduled_for"] = now + policy.delay_for(attempts)
        values["status"] = int(new_status)

        conditions = [
            QueueJobModel.id == job.id,
            QueueJobModel.status == int(JobStatus.PROCESSING),
            QueueJobModel.failed_attempts == job.failed_attempts,
        ]
        if job.claimed_by is not None:
            conditions.append(QueueJobModel.claimed_by == job.claimed_by)

        stmt = (
            update(QueueJobModel)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with _storage_errors("fail"):
            result = await self._session.execute(stmt)

        if result.rowcount != 1:  # type: ignore[attr-defined]
            return None
        return new_status

    async def requeue_stale(self, older_than: datetime, policy: BackoffPolicy) -> int:
        stmt = select(*_JOB_COLUMNS).where(
            QueueJobModel.status == int(JobStatus.PROCESSING),
            QueueJobModel.updated_at < older_than,
        )
        with _storage_errors("requeue_stale"):
            result = await self._session.execute(stmt)
            stale = [self._map_row(row) for row in result.all()]

        recovered = 0
        for job in stale:
            status = await self.fail(job, "worker lost while processing", policy)
            if status is not None:
                recovered += 1
                logger.warning(
                    "Recovered stale job %s (%s) claimed by %s",
                    job.id,
                    job.kind,
                    job.claimed_by,
                )
        return recovered

    async def purge_done(self, older_than: datetime) -> int:
        stmt = delete(QueueJobModel).where(
            QueueJobModel.status == int(JobStatus.DONE),
            QueueJobModel.updated_at < older_than,
        )
        with _storage_errors("purge"):
            result = await self._session.execute(stmt)
            await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined]

    async def find_by_id(self, job_id: UUID) -> Job | None:
        stmt = select(*_JOB_COLUMNS).where(QueueJobModel.id == job_id)
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return self._map_row(row)

    async def count_by_status(self) -> dict[JobStatus, int]:
        stmt = select(QueueJobModel.status, func.count()).group_by(QueueJobModel.status)
        result = await self._session.execute(stmt)
        counts = {status: 0 for status in JobStatus}
        for status, count in result.all():
            counts[JobStatus(status)] = count
        return counts

    def _map_row(self, row: Any) -> Job:
        return Job(
            id=row.id,
            message=dict(row.message),
            status=JobStatus(row.status),
            scheduled_for=ensure_tz_aware(row.scheduled_for),
            failed_attempts=row.failed_attempts,
            created_at=ensure_tz_aware(row.created_at),
            updated_at=ensure_tz_aware(row.updated_at),
            claimed_by=row.claimed_by,
            last_error=row.last_error,
        )
