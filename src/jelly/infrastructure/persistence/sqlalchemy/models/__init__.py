"""SQLAlchemy models for the jelly core."""

from jelly.infrastructure.persistence.sqlalchemy.models.base import Base, TimestampMixin
from jelly.infrastructure.persistence.sqlalchemy.models.queue_job_model import (
    QueueJobModel,
)

__all__ = [
    "Base",
    "QueueJobModel",
    "TimestampMixin",
]
