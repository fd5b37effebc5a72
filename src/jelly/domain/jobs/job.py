"""Queue job record and its status lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any
from uuid import UUID


class JobStatus(IntEnum):
    """Stored as a small integer in the ``queue.status`` column.

    pending -> processing -> done
    processing -> pending (retry, rescheduled with backoff)
    processing -> failed (attempts exhausted, terminal)
    """

    PENDING = 0
    PROCESSING = 1
    DONE = 2
    FAILED = 3


@dataclass(frozen=True)
class Job:
    """Snapshot of a queue row as seen by a worker."""

    id: UUID
    message: dict[str, Any]
    status: JobStatus
    scheduled_for: datetime
    failed_attempts: int
    created_at: datetime
    updated_at: datetime
    claimed_by: str | None = None
    last_error: str | None = None

    @property
    def kind(self) -> str:
        return str(self.message.get("kind", "unknown"))
