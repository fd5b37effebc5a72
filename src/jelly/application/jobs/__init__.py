"""Background jobs: handlers per message kind and the polling worker."""

from jelly.application.jobs.handlers import JobDispatcher, MailLinks
from jelly.application.jobs.ports import EmailSender, JobRepositories
from jelly.application.jobs.worker import (
    BatchResult,
    QueueWorker,
    WorkerOptions,
    default_worker_id,
)

__all__ = [
    "BatchResult",
    "EmailSender",
    "JobDispatcher",
    "JobRepositories",
    "MailLinks",
    "QueueWorker",
    "WorkerOptions",
    "default_worker_id",
]
