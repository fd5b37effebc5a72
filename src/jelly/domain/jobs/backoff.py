"""Retry policy for failed jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jelly_config.settings import Settings


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff: ``base * 2**previous_failures``, capped.

    A job that has failed ``max_attempts`` times is terminal.
    """

    base_seconds: float = 30.0
    max_seconds: float = 3600.0
    max_attempts: int = 5

    def __post_init__(self) -> None:
        if self.base_seconds <= 0:
            raise ValueError("base_seconds must be positive")
        if self.max_seconds < self.base_seconds:
            raise ValueError("max_seconds must be >= base_seconds")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> BackoffPolicy:
        return cls(
            base_seconds=settings.queue_backoff_base_seconds,
            max_seconds=settings.queue_backoff_max_seconds,
            max_attempts=settings.queue_max_attempts,
        )

    def delay_for(self, failed_attempts: int) -> timedelta:
        """Delay before the next try once ``failed_attempts`` failures happened.

        ``failed_attempts`` counts the failure being recorded, so the first
        failure waits ``base_seconds``.
        """
        exponent = max(failed_attempts - 1, 0)
        # 2**exponent overflows float multiplication for very large counters
        if exponent > 62:
            return timedelta(seconds=self.max_seconds)
        return timedelta(seconds=min(self.base_seconds * 2**exponent, self.max_seconds))

    def is_exhausted(self, failed_attempts: int) -> bool:
        return failed_attempts >= self.max_attempts
