"""Unit tests for QueueWorker with in-memory repositories."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from jelly.application.jobs import BatchResult, MailLinks, QueueWorker, WorkerOptions
from jelly.domain.jobs import (
    BackoffPolicy,
    Job,
    JobStatus,
    SendPasswordWasResetEmail,
    dump_message,
)
from jelly.domain.shared.exceptions import ExternalServiceError, StorageError
from jelly.domain.shared.time import utc_now


def _job(message=None, failed_attempts=0) -> Job:
    now = utc_now()
    return Job(
        id=uuid4(),
        message=message or dump_message(SendPasswordWasResetEmail(email="ada@example.com")),
        status=JobStatus.PROCESSING,
        scheduled_for=now,
        failed_attempts=failed_attempts,
        created_at=now,
        updated_at=now,
        claimed_by="test-worker",
    )


class FakeQueue:
    """Records settlements the way the SQL queue would apply them."""

    def __init__(self, jobs=()):
        self.pending = list(jobs)
        self.completed = []
        self.failures = []
        self.claim_error = None

    async def claim(self, limit, worker_id):
        if self.claim_error is not None:
            raise self.claim_error
        batch, self.pending = self.pending[:limit], self.pending[limit:]
        return batch

    async def complete(self, job_id):
        self.completed.append(job_id)
        return True

    async def fail(self, job, error, policy, *, terminal=False):
        self.failures.append((job.id, error, terminal))
        if terminal or policy.is_exhausted(job.failed_attempts + 1):
            return JobStatus.FAILED
        return JobStatus.PENDING

    async def requeue_stale(self, older_than, policy):
        return 0


class FakeRepositories:
    def __init__(self, queue):
        self.queue = queue
        self.commits = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def commit(self):
        self.commits += 1

    def job_queue(self):
        return self.queue

    def account_repository(self):
        return AsyncMock()

    def token_service(self):
        return AsyncMock()


class RecordingSender:
    def __init__(self, error=None, delay=0.0):
        self.sent = []
        self.error = error
        self.delay = delay

    async def send(self, to, template, context):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((to, template))


class CountingSender(RecordingSender):
    def __init__(self):
        super().__init__(delay=0.01)
        self.in_flight = 0
        self.peak = 0

    async def send(self, to, template, context):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await super().send(to, template, context)
        finally:
            self.in_flight -= 1


def _worker(queue, sender, **options) -> QueueWorker:
    return QueueWorker(
        repositories_factory=lambda: FakeRepositories(queue),
        email_sender=sender,
        links=MailLinks(domain="https://jelly.test"),
        policy=BackoffPolicy(base_seconds=1, max_seconds=10, max_attempts=3),
        options=WorkerOptions(**options),
        worker_id="test-worker",
    )


class TestRunOnce:
    async def test_empty_queue(self):
        worker = _worker(FakeQueue(), RecordingSender())

        assert await worker.run_once() == BatchResult()

    async def test_batch_completes(self):
        jobs = [_job() for _ in range(3)]
        queue = FakeQueue(jobs)
        sender = RecordingSender()

        result = await _worker(queue, sender).run_once()

        assert result == BatchResult(claimed=3, done=3)
        assert sorted(queue.completed) == sorted(job.id for job in jobs)
        assert len(sender.sent) == 3

    async def test_concurrency_caps_jobs_in_flight(self):
        queue = FakeQueue([_job() for _ in range(6)])
        sender = CountingSender()

        result = await _worker(queue, sender, concurrency=2).run_once()

        assert result == BatchResult(claimed=6, done=6)
        assert sender.peak == 2

    async def test_batch_size_limits_claim(self):
        queue = FakeQueue([_job() for _ in range(5)])

        result = await _worker(queue, RecordingSender(), batch_size=2).run_once()

        assert result.claimed == 2
        assert len(queue.pending) == 3

    async def test_failed_send_is_retried(self):
        job = _job()
        queue = FakeQueue([job])

        result = await _worker(queue, RecordingSender(error=ExternalServiceError("down"))).run_once()

        assert result == BatchResult(claimed=1, retried=1)
        [(job_id, error, terminal)] = queue.failures
        assert job_id == job.id
        assert "ExternalServiceError: down" in error
        assert terminal is False
        assert queue.completed == []

    async def test_last_attempt_fails_permanently(self):
        queue = FakeQueue([_job(failed_attempts=2)])

        result = await _worker(queue, RecordingSender(error=RuntimeError("boom"))).run_once()

        assert result == BatchResult(claimed=1, failed=1)

    async def test_unreadable_payload_is_terminal(self):
        queue = FakeQueue([_job(message={"kind": "send_birthday_card"})])
        sender = RecordingSender()

        result = await _worker(queue, sender).run_once()

        assert result == BatchResult(claimed=1, failed=1)
        assert queue.failures[0][2] is True
        assert sender.sent == []

    async def test_slow_job_times_out(self):
        queue = FakeQueue([_job()])

        result = await _worker(queue, RecordingSender(delay=1.0), job_timeout=0.05).run_once()

        assert result == BatchResult(claimed=1, retried=1)
        assert queue.failures[0][1].startswith("timed out")

    async def test_one_bad_job_does_not_block_others(self):
        good, bad = _job(), _job(message={"kind": "nope"})
        queue = FakeQueue([good, bad])

        result = await _worker(queue, RecordingSender()).run_once()

        assert result == BatchResult(claimed=2, done=1, failed=1)
        assert queue.completed == [good.id]

    async def test_claim_storage_error_propagates(self):
        queue = FakeQueue()
        queue.claim_error = StorageError()

        with pytest.raises(StorageError):
            await _worker(queue, RecordingSender()).run_once()


class TestRunForever:
    async def test_stops_when_event_set(self):
        queue = FakeQueue([_job()])
        sender = RecordingSender()
        worker = _worker(queue, sender, poll_interval=0.01)
        stop = asyncio.Event()

        task = asyncio.create_task(worker.run_forever(stop))
        for _ in range(100):
            if queue.completed:
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert len(queue.completed) == 1

    async def test_survives_storage_errors(self):
        queue = FakeQueue()
        queue.claim_error = StorageError()
        worker = _worker(queue, RecordingSender(), error_delay=0.01)
        stop = asyncio.Event()

        task = asyncio.create_task(worker.run_forever(stop))
        await asyncio.sleep(0.05)
        assert not task.done()
        stop.set()
        await asyncio.wait_for(task, timeout=1)


class TestWorkerOptions:
    def test_from_settings(self, make_settings):
        options = WorkerOptions.from_settings(
            make_settings(queue_batch_size=7, queue_stale_after_minutes=3, queue_concurrency=3),
        )

        assert options.batch_size == 7
        assert options.stale_after == timedelta(minutes=3)
        assert options.concurrency == 3
