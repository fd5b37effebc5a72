"""Queue semantics against a real SQLite database."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import update

from jelly.domain.jobs import (
    BackoffPolicy,
    JobStatus,
    SendPasswordWasResetEmail,
    SendVerifyAccountEmail,
)
from jelly.domain.shared.time import utc_now
from jelly.infrastructure.persistence.sqlalchemy.models import QueueJobModel
from jelly.infrastructure.persistence.sqlalchemy.repositories import (
    JobQueueRepositorySQLAlchemy,
    SessionScope,
)

POLICY = BackoffPolicy(base_seconds=30, max_seconds=3600, max_attempts=3)


def _message(n: int = 0) -> SendVerifyAccountEmail:
    return SendVerifyAccountEmail(email=f"user{n}@example.com")


@pytest.fixture
def queue(db_session) -> JobQueueRepositorySQLAlchemy:
    return JobQueueRepositorySQLAlchemy(db_session)


async def _make_due(session, job_id) -> None:
    await session.execute(
        update(QueueJobModel)
        .where(QueueJobModel.id == job_id)
        .values(scheduled_for=utc_now() - timedelta(seconds=1)),
    )


class TestPushAndClaim:
    async def test_push_stores_pending_job(self, queue):
        job_id = await queue.push(_message())

        job = await queue.find_by_id(job_id)
        assert job.status is JobStatus.PENDING
        assert job.failed_attempts == 0
        assert job.message == {"kind": "send_verify_account_email", "email": "user0@example.com"}
        assert job.kind == "send_verify_account_email"

    async def test_claim_marks_processing(self, queue):
        job_id = await queue.push(_message())

        [job] = await queue.claim(10, "worker-a")

        assert job.id == job_id
        assert job.status is JobStatus.PROCESSING
        assert job.claimed_by == "worker-a"
        assert await queue.claim(10, "worker-b") == []

    async def test_future_job_not_claimed(self, queue):
        await queue.push(_message(), scheduled_for=utc_now() + timedelta(minutes=5))

        assert await queue.claim(10, "worker-a") == []

    async def test_claim_order_and_limit(self, queue):
        now = utc_now()
        late = await queue.push(_message(1), scheduled_for=now - timedelta(seconds=1))
        early = await queue.push(_message(2), scheduled_for=now - timedelta(seconds=10))
        await queue.push(_message(3), scheduled_for=now - timedelta(seconds=0.5))

        jobs = await queue.claim(2, "worker-a")

        assert [job.id for job in jobs] == [early, late]

    async def test_non_positive_limit(self, queue):
        await queue.push(_message())

        assert await queue.claim(0, "worker-a") == []


class TestSettle:
    async def test_complete(self, queue):
        await queue.push(_message())
        [job] = await queue.claim(1, "worker-a")

        assert await queue.complete(job.id) is True
        assert (await queue.find_by_id(job.id)).status is JobStatus.DONE
        assert await queue.complete(job.id) is False

    async def test_retry_delays_grow_until_failed(self, queue, db_session):
        job_id = await queue.push(_message())
        delays = []

        for _ in range(2):
            [job] = await queue.claim(1, "worker-a")
            assert await queue.fail(job, "smtp down", POLICY) is JobStatus.PENDING
            stored = await queue.find_by_id(job_id)
            delays.append(stored.scheduled_for - stored.updated_at)
            assert await queue.claim(1, "worker-a") == []
            await _make_due(db_session, job_id)

        [job] = await queue.claim(1, "worker-a")
        assert await queue.fail(job, "smtp down", POLICY) is JobStatus.FAILED

        stored = await queue.find_by_id(job_id)
        assert delays == [timedelta(seconds=30), timedelta(seconds=60)]
        assert stored.status is JobStatus.FAILED
        assert stored.failed_attempts == 3
        assert stored.last_error == "smtp down"
        assert stored.claimed_by is None
        assert await queue.claim(1, "worker-a") == []

    async def test_terminal_failure(self, queue):
        await queue.push(_message())
        [job] = await queue.claim(1, "worker-a")

        assert await queue.fail(job, "bad payload", POLICY, terminal=True) is JobStatus.FAILED

    async def test_second_failure_report_is_ignored(self, queue):
        await queue.push(_message())
        [job] = await queue.claim(1, "worker-a")

        assert await queue.fail(job, "first", POLICY) is JobStatus.PENDING
        assert await queue.fail(job, "second", POLICY) is None

        stored = await queue.find_by_id(job.id)
        assert stored.failed_attempts == 1
        assert stored.last_error == "first"

    async def test_long_errors_truncated(self, queue):
        await queue.push(_message())
        [job] = await queue.claim(1, "worker-a")

        await queue.fail(job, "x" * 5000, POLICY)

        assert len((await queue.find_by_id(job.id)).last_error) == 2000


class TestMaintenance:
    async def test_requeue_stale(self, queue, db_session):
        await queue.push(_message())
        [job] = await queue.claim(1, "crashed-worker")
        await db_session.execute(
            update(QueueJobModel)
            .where(QueueJobModel.id == job.id)
            .values(updated_at=utc_now() - timedelta(hours=1)),
        )

        recovered = await queue.requeue_stale(utc_now() - timedelta(minutes=15), POLICY)

        stored = await queue.find_by_id(job.id)
        assert recovered == 1
        assert stored.status is JobStatus.PENDING
        assert stored.failed_attempts == 1
        assert stored.claimed_by is None

    async def test_fresh_processing_job_not_requeued(self, queue):
        await queue.push(_message())
        await queue.claim(1, "busy-worker")

        assert await queue.requeue_stale(utc_now() - timedelta(minutes=15), POLICY) == 0

    async def test_purge_done(self, queue):
        await queue.push(_message(1))
        await queue.push(_message(2))
        done, other = await queue.claim(2, "worker-a")
        await queue.complete(done.id)

        assert await queue.purge_done(utc_now() - timedelta(days=1)) == 0
        assert await queue.purge_done(utc_now() + timedelta(seconds=1)) == 1
        assert await queue.find_by_id(done.id) is None
        assert await queue.find_by_id(other.id) is not None

    async def test_count_by_status(self, queue):
        for n in range(3):
            await queue.push(_message(n))
        first, _ = await queue.claim(2, "worker-a")
        await queue.complete(first.id)

        counts = await queue.count_by_status()

        assert counts == {
            JobStatus.PENDING: 1,
            JobStatus.PROCESSING: 1,
            JobStatus.DONE: 1,
            JobStatus.FAILED: 0,
        }


class TestConcurrentClaim:
    async def test_each_job_has_one_claimant(self, session_maker):
        async with SessionScope(session_maker) as repos:
            for n in range(20):
                await repos.job_queue().push(SendPasswordWasResetEmail(email=f"u{n}@example.com"))
            await repos.commit()

        async def claim(worker_id):
            async with SessionScope(session_maker) as repos:
                jobs = await repos.job_queue().claim(8, worker_id)
                await repos.commit()
            return jobs

        batches = await asyncio.gather(*(claim(f"worker-{n}") for n in range(4)))

        claimed = [job.id for batch in batches for job in batch]
        assert len(claimed) == 20
        assert len(set(claimed)) == 20
        for n, batch in enumerate(batches):
            assert all(job.claimed_by == f"worker-{n}" for job in batch)
