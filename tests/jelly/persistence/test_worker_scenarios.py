"""End-to-end worker runs against SQLite: enqueue, deliver, settle."""

from datetime import timedelta

import pytest
from sqlalchemy import update

from jelly.application.jobs import MailLinks, QueueWorker, WorkerOptions
from jelly.domain.jobs import (
    BackoffPolicy,
    JobStatus,
    SendResetPasswordEmail,
    SendVerifyAccountEmail,
)
from jelly.domain.shared.exceptions import ExternalServiceError
from jelly.domain.shared.time import utc_now
from jelly.infrastructure.persistence.sqlalchemy.models import QueueJobModel
from jelly.infrastructure.persistence.sqlalchemy.repositories import SessionScope
from jelly_identity.repositories import TokenPurpose


class RecordingSender:
    def __init__(self):
        self.sent = []
        self.fail_with = None

    async def send(self, to, template, context):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to, "template": template, **context})


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def worker(session_maker, sender) -> QueueWorker:
    # One job per batch keeps SQLite to a single writer
    return QueueWorker(
        repositories_factory=lambda: SessionScope(session_maker),
        email_sender=sender,
        links=MailLinks(domain="https://jelly.test"),
        policy=BackoffPolicy(base_seconds=30, max_seconds=3600, max_attempts=2),
        options=WorkerOptions(batch_size=1),
        worker_id="scenario-worker",
    )


async def _enqueue(session_maker, message, with_account=True):
    async with SessionScope(session_maker) as repos:
        if with_account:
            await repos.account_repository().create_account("ada@example.com", "Ada", "digest")
        job_id = await repos.job_queue().push(message)
        await repos.commit()
    return job_id


async def _job(session_maker, job_id):
    async with SessionScope(session_maker) as repos:
        return await repos.job_queue().find_by_id(job_id)


class TestWorkerScenarios:
    async def test_verification_link_can_be_redeemed(self, session_maker, worker, sender):
        job_id = await _enqueue(session_maker, SendVerifyAccountEmail(email="ada@example.com"))

        result = await worker.run_once()

        assert result.done == 1
        assert (await _job(session_maker, job_id)).status is JobStatus.DONE
        [email] = sender.sent
        assert email["template"] == "verify-account"
        token = email["action_url"].rsplit("/", 1)[1]
        async with SessionScope(session_maker) as repos:
            account_id = await repos.token_service().redeem(token, TokenPurpose.VERIFY_EMAIL)
            account = await repos.account_repository().find_by_id(account_id)
        assert account.email == "ada@example.com"

    async def test_job_for_unknown_address_completes_silently(self, session_maker, worker, sender):
        job_id = await _enqueue(
            session_maker,
            SendResetPasswordEmail(email="ghost@example.com"),
            with_account=False,
        )

        await worker.run_once()

        assert sender.sent == []
        assert (await _job(session_maker, job_id)).status is JobStatus.DONE

    async def test_delivery_failure_is_rescheduled_then_failed(self, session_maker, worker, sender):
        sender.fail_with = ExternalServiceError("postmark down")
        job_id = await _enqueue(session_maker, SendVerifyAccountEmail(email="ada@example.com"))

        first = await worker.run_once()
        job = await _job(session_maker, job_id)

        assert first.retried == 1
        assert job.status is JobStatus.PENDING
        assert job.failed_attempts == 1
        assert job.scheduled_for > utc_now()
        assert "postmark down" in job.last_error
        assert (await worker.run_once()).claimed == 0

        async with SessionScope(session_maker) as repos:
            await repos.session.execute(
                update(QueueJobModel)
                .where(QueueJobModel.id == job_id)
                .values(scheduled_for=utc_now() - timedelta(seconds=1)),
            )
            await repos.commit()

        second = await worker.run_once()

        assert second.failed == 1
        assert (await _job(session_maker, job_id)).status is JobStatus.FAILED

    async def test_failed_attempt_rolls_back_issued_token(self, session_maker, worker, sender):
        sender.fail_with = ExternalServiceError("smtp down")
        await _enqueue(session_maker, SendVerifyAccountEmail(email="ada@example.com"))

        await worker.run_once()

        async with SessionScope(session_maker) as repos:
            account = await repos.account_repository().find_by_email("ada@example.com")
            issued = await repos.token_service().count_issued_since(
                account.id,
                TokenPurpose.VERIFY_EMAIL,
                timedelta(days=1),
            )
        assert issued == 0

    async def test_stale_job_recovered(self, session_maker, worker, sender):
        job_id = await _enqueue(session_maker, SendVerifyAccountEmail(email="ada@example.com"))
        async with SessionScope(session_maker) as repos:
            await repos.job_queue().claim(1, "crashed-worker")
            await repos.session.execute(
                update(QueueJobModel)
                .where(QueueJobModel.id == job_id)
                .values(updated_at=utc_now() - timedelta(hours=1)),
            )
            await repos.commit()

        assert await worker.recover_stale() == 1

        job = await _job(session_maker, job_id)
        assert job.status is JobStatus.PENDING
        assert job.failed_attempts == 1
