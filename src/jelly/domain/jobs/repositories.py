"""Repository interface for the durable job queue."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from jelly.domain.jobs.backoff import BackoffPolicy
from jelly.domain.jobs.job import Job, JobStatus
from jelly.domain.jobs.messages import JobMessage


class JobQueueRepository(ABC):
    """Durable queue of pending work.

    Claiming is a single conditional update, so concurrent pollers never
    receive the same job. Delivery is at-least-once.
    """

    @abstractmethod
    async def push(
        self,
        message: JobMessage,
        scheduled_for: datetime | None = None,
    ) -> UUID:
        """Enqueue a message, due now unless ``scheduled_for`` is given."""

    @abstractmethod
    async def claim(self, limit: int, worker_id: str) -> list[Job]:
        """Atomically move up to ``limit`` due pending jobs to processing.

        Jobs are picked by ``scheduled_for`` then creation order.
        """

    @abstractmethod
    async def complete(self, job_id: UUID) -> bool:
        """Mark a processing job done. Returns False if it was not processing."""

    @abstractmethod
    async def fail(
        self,
        job: Job,
        error: str,
        policy: BackoffPolicy,
        *,
        terminal: bool = False,
    ) -> JobStatus | None:
        """Record a failed attempt and reschedule or give up.

        Returns the new status, or None if the job was no longer processing.
        """

    @abstractmethod
    async def requeue_stale(self, older_than: datetime, policy: BackoffPolicy) -> int:
        """Apply the failure transition to jobs stuck in processing."""

    @abstractmethod
    async def purge_done(self, older_than: datetime) -> int:
        """Delete done jobs last touched before ``older_than``."""

    @abstractmethod
    async def find_by_id(self, job_id: UUID) -> Job | None:
        pass

    @abstractmethod
    async def count_by_status(self) -> dict[JobStatus, int]:
        pass
