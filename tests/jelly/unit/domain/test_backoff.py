"""Unit tests for BackoffPolicy."""

from datetime import timedelta

import pytest

from jelly.domain.jobs import BackoffPolicy


class TestBackoffPolicy:
    def setup_method(self):
        self.policy = BackoffPolicy(base_seconds=30, max_seconds=3600, max_attempts=5)

    @pytest.mark.parametrize(
        ("failures", "seconds"),
        [(1, 30), (2, 60), (3, 120), (4, 240), (7, 1920), (8, 3600), (50, 3600)],
    )
    def test_delay_doubles_until_cap(self, failures, seconds):
        assert self.policy.delay_for(failures) == timedelta(seconds=seconds)

    def test_huge_counter_is_capped(self):
        assert self.policy.delay_for(10_000) == timedelta(seconds=3600)

    def test_exhausted_at_max_attempts(self):
        assert self.policy.is_exhausted(4) is False
        assert self.policy.is_exhausted(5) is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"base_seconds": 0},
            {"base_seconds": 10, "max_seconds": 5},
            {"max_attempts": 0},
        ],
    )
    def test_invalid_policies_rejected(self, kwargs):
        with pytest.raises(ValueError):
            BackoffPolicy(**kwargs)

    def test_from_settings(self, make_settings):
        settings = make_settings(
            queue_backoff_base_seconds=5,
            queue_backoff_max_seconds=50,
            queue_max_attempts=2,
        )

        policy = BackoffPolicy.from_settings(settings)

        assert policy == BackoffPolicy(base_seconds=5, max_seconds=50, max_attempts=2)
