"""SQLAlchemy model for the durable job queue."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Index, Integer, SmallInteger, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from jelly.domain.jobs import JobStatus
from jelly.domain.shared.time import utc_now
from jelly.infrastructure.persistence.sqlalchemy.models.base import Base, TimestampMixin


class QueueJobModel(Base, TimestampMixin):
    """One unit of pending async work (usually an email to send)."""

    __tablename__ = "queue"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    scheduled_for: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[int] = mapped_column(
        SmallInteger,
        default=int(JobStatus.PENDING),
        nullable=False,
        index=True,
    )
    message: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )
    claimed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_queue_status_scheduled_for", "status", "scheduled_for"),
    )

    def __repr__(self) -> str:
        return (
            f"<QueueJobModel(id={self.id}, status={self.status}, "
            f"failed_attempts={self.failed_attempts})>"
        )
