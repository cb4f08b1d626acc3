"""Unit Tests for the webhook retry schedule."""

from datetime import datetime, timedelta

import pytest

from relay_core.service.webhooks.schedule import (
    MAX_ATTEMPTS,
    RETRY_SCHEDULE_SECONDS,
    is_exhausted,
    next_retry_at,
    retry_delay_seconds,
)


class TestRetrySchedule:
    """Tests for retry_delay_seconds() and next_retry_at()."""

    def test_schedule_constants(self):
        assert RETRY_SCHEDULE_SECONDS == (5, 30, 300, 1800, 7200)
        assert MAX_ATTEMPTS == 5

    @pytest.mark.parametrize(
        "failed_attempts,expected",
        [
            (1, 5),
            (2, 30),
            (3, 300),
            (4, 1800),
        ],
    )
    def test_delay_after_each_failure(self, failed_attempts, expected):
        assert retry_delay_seconds(failed_attempts) == expected

    def test_delay_is_capped_at_two_hours(self):
        assert retry_delay_seconds(5) == 7200
        assert retry_delay_seconds(50) == 7200

    def test_no_delay_before_first_failure(self):
        assert retry_delay_seconds(0) == 0

    def test_next_retry_at(self):
        now = datetime(2024, 1, 1, 12, 0, 0)

        assert next_retry_at(3, now) == now + timedelta(minutes=5)


class TestExhaustion:
    def test_under_budget(self):
        assert not is_exhausted(MAX_ATTEMPTS - 1)

    def test_at_budget(self):
        assert is_exhausted(MAX_ATTEMPTS)
