"""Durable job queue domain: job records, payloads and retry policy."""

from jelly.domain.jobs.backoff import BackoffPolicy
from jelly.domain.jobs.job import Job, JobStatus
from jelly.domain.jobs.messages import (
    JobMessage,
    SendAccountOddRegisterAttemptEmail,
    SendPasswordWasResetEmail,
    SendResetPasswordEmail,
    SendVerifyAccountEmail,
    SendWelcomeAccountEmail,
    dump_message,
    load_message,
)
from jelly.domain.jobs.repositories import JobQueueRepository

__all__ = [
    "BackoffPolicy",
    "Job",
    "JobMessage",
    "JobQueueRepository",
    "JobStatus",
    "SendAccountOddRegisterAttemptEmail",
    "SendPasswordWasResetEmail",
    "SendResetPasswordEmail",
    "SendVerifyAccountEmail",
    "SendWelcomeAccountEmail",
    "dump_message",
    "load_message",
]
