"""SQLAlchemy repository implementations for the jelly core."""

from jelly.infrastructure.persistence.sqlalchemy.repositories.factory import (
    SessionScope,
    SQLAlchemyRepositoryFactory,
)
from jelly.infrastructure.persistence.sqlalchemy.repositories.job_queue_repository import (  # noqa: E501
    JobQueueRepositorySQLAlchemy,
)

__all__ = [
    "JobQueueRepositorySQLAlchemy",
    "SQLAlchemyRepositoryFactory",
    "SessionScope",
]
