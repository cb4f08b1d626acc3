"""
Retry Schedule for webhook deliveries.

The schedule is a stable external contract and is not configurable per
endpoint:

    failure 1 -> retry in 5 seconds
    failure 2 -> retry in 30 seconds
    failure 3 -> retry in 5 minutes
    failure 4 -> retry in 30 minutes
    failure 5 -> dead letter

The final 2 hour slot caps any lookup past the table.
"""

from datetime import datetime, timedelta

RETRY_SCHEDULE_SECONDS: tuple[int, ...] = (5, 30, 300, 1800, 7200)
MAX_ATTEMPTS = 5


def retry_delay_seconds(failed_attempts: int) -> int:
    """
    Delay before the next attempt after `failed_attempts` failures.

    Args:
        failed_attempts: Number of failed attempts so far (1-based)
    """
    if failed_attempts < 1:
        return 0
    index = min(failed_attempts, len(RETRY_SCHEDULE_SECONDS)) - 1
    return RETRY_SCHEDULE_SECONDS[index]


def next_retry_at(failed_attempts: int, now: datetime) -> datetime:
    return now + timedelta(seconds=retry_delay_seconds(failed_attempts))


def is_exhausted(attempts: int) -> bool:
    """True once a delivery has used its whole attempt budget."""
    return attempts >= MAX_ATTEMPTS
