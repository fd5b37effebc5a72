"""Polling worker that drains the job queue."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from pydantic import ValidationError as PayloadError

from jelly.application.jobs.handlers import JobDispatcher, MailLinks
from jelly.domain.jobs import BackoffPolicy, Job, JobStatus, load_message
from jelly.domain.shared.exceptions import StorageError
from jelly.domain.shared.time import utc_now

if TYPE_CHECKING:
    from jelly.application.jobs.ports import EmailSender, JobRepositories
    from jelly_config.settings import Settings

logger = logging.getLogger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


@dataclass(frozen=True)
class WorkerOptions:
    batch_size: int = 50
    concurrency: int = 5
    job_timeout: float = 30.0
    poll_interval: float = 0.125
    error_delay: float = 0.5
    stale_after: timedelta = timedelta(minutes=15)

    @classmethod
    def from_settings(cls, settings: Settings) -> WorkerOptions:
        return cls(
            batch_size=settings.queue_batch_size,
            concurrency=settings.queue_concurrency,
            job_timeout=settings.queue_job_timeout_seconds,
            poll_interval=settings.queue_poll_interval_seconds,
            error_delay=settings.queue_error_delay_seconds,
            stale_after=timedelta(minutes=settings.queue_stale_after_minutes),
        )


@dataclass(frozen=True)
class BatchResult:
    """Outcome counts of one ``run_once`` call."""

    claimed: int = 0
    done: int = 0
    retried: int = 0
    failed: int = 0


class QueueWorker:
    """Claims due jobs in batches and runs each in its own transaction.

    A job is settled (done, rescheduled or failed) in a transaction of its
    own, so one slow or broken job never holds back the rest of the batch.
    Delivery is at least once: a crash between sending and settling means
    the job runs again after ``stale_after``.
    """

    def __init__(  # noqa: PLR0913
        self,
        repositories_factory: Callable[[], JobRepositories],
        email_sender: EmailSender,
        links: MailLinks,
        policy: BackoffPolicy | None = None,
        options: WorkerOptions | None = None,
        worker_id: str | None = None,
    ):
        self._repositories_factory = repositories_factory
        self._email_sender = email_sender
        self._links = links
        self._policy = policy or BackoffPolicy()
        self._options = options or WorkerOptions()
        self.worker_id = worker_id or default_worker_id()

    async def run_once(self) -> BatchResult:
        """Claim one batch, run it, and settle every job in it.

        Raises
        ------
        StorageError
            If the batch cannot be claimed
        """
        async with self._repositories_factory() as repos:
            jobs = await repos.job_queue().claim(self._options.batch_size, self.worker_id)
            await repos.commit()

        if not jobs:
            return BatchResult()

        # At most ``concurrency`` jobs hold a session at once
        slots = asyncio.Semaphore(self._options.concurrency)

        async def run(job: Job) -> JobStatus | None:
            async with slots:
                return await self._run_job(job)

        statuses = await asyncio.gather(*(run(job) for job in jobs))
        return BatchResult(
            claimed=len(jobs),
            done=statuses.count(JobStatus.DONE),
            retried=statuses.count(JobStatus.PENDING),
            failed=statuses.count(JobStatus.FAILED),
        )

    async def recover_stale(self) -> int:
        """Put jobs abandoned by crashed workers back through the retry path."""
        older_than = utc_now() - self._options.stale_after
        async with self._repositories_factory() as repos:
            recovered = await repos.job_queue().requeue_stale(older_than, self._policy)
            await repos.commit()
        return recovered

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Poll until ``stop_event`` is set; sleeps when the queue is idle."""
        logger.info("Queue worker %s started", self.worker_id)
        await self._recover_stale_logged()

        while not stop_event.is_set():
            try:
                result = await self.run_once()
            except StorageError as e:
                logger.warning("Queue poll failed, retrying: %s", e)
                await self._sleep(stop_event, self._options.error_delay)
                continue

            if result.claimed:
                logger.info(
                    "Processed %d job(s): %d done, %d retried, %d failed",
                    result.claimed,
                    result.done,
                    result.retried,
                    result.failed,
                )
            else:
                await self._sleep(stop_event, self._options.poll_interval)

        logger.info("Queue worker %s stopped", self.worker_id)

    async def _recover_stale_logged(self) -> None:
        try:
            recovered = await self.recover_stale()
        except StorageError as e:
            logger.warning("Stale job recovery failed: %s", e)
            return
        if recovered:
            logger.info("Requeued %d stale job(s)", recovered)

    async def _sleep(self, stop_event: asyncio.Event, seconds: float) -> None:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run_job(self, job: Job) -> JobStatus | None:
        try:
            message = load_message(job.message)
        except PayloadError as e:
            logger.error("Job %s has an unreadable payload: %s", job.id, e)
            return await self._settle_failure(job, f"invalid payload: {e}", terminal=True)

        try:
            async with self._repositories_factory() as repos:
                dispatcher = JobDispatcher(
                    account_repository=repos.account_repository(),
                    token_service=repos.token_service(),
                    email_sender=self._email_sender,
                    links=self._links,
                )
                await asyncio.wait_for(
                    dispatcher.dispatch(message),
                    timeout=self._options.job_timeout,
                )
                completed = await repos.job_queue().complete(job.id)
                await repos.commit()
        except asyncio.TimeoutError:
            logger.warning("Job %s (%s) timed out", job.id, job.kind)
            return await self._settle_failure(
                job, f"timed out after {self._options.job_timeout}s"
            )
        except Exception as e:
            logger.exception("Job %s (%s) failed", job.id, job.kind)
            return await self._settle_failure(job, f"{type(e).__name__}: {e}")

        if not completed:
            logger.warning("Job %s was settled by someone else", job.id)
            return None
        logger.debug("Job %s (%s) done", job.id, job.kind)
        return JobStatus.DONE

    async def _settle_failure(
        self,
        job: Job,
        error: str,
        terminal: bool = False,
    ) -> JobStatus | None:
        try:
            async with self._repositories_factory() as repos:
                status = await repos.job_queue().fail(
                    job, error, self._policy, terminal=terminal
                )
                await repos.commit()
        except StorageError:
            logger.exception("Could not record failure of job %s", job.id)
            return None

        if status is JobStatus.FAILED:
            logger.error(
                "Job %s (%s) failed permanently after %d attempt(s)",
                job.id,
                job.kind,
                job.failed_attempts + 1,
            )
        return status
