"""
Endpoint Health Classification.

    healthy    delivery rate >= 95%
    degraded   delivery rate >= 80%, or healthy with an error in the last hour
    unhealthy  delivery rate < 80%, or endpoint disabled
"""

from datetime import datetime, timedelta
from enum import Enum

HEALTHY_THRESHOLD = 95
DEGRADED_THRESHOLD = 80
RECENT_ERROR_WINDOW = timedelta(hours=1)


class EndpointHealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def delivery_rate(successes: int, total: int) -> int:
    """Percentage of successes, rounded half up; 100 when there is no data."""
    if total <= 0:
        return 100
    return (successes * 200 + total) // (total * 2)


def classify_endpoint_health(
    rate: int,
    disabled: bool,
    last_error_at: datetime | None,
    now: datetime,
) -> EndpointHealthStatus:
    """
    Classify an endpoint from its delivery rate and recent errors.

    Args:
        rate: Delivery rate percentage (0-100)
        disabled: Whether the endpoint is disabled
        last_error_at: Time of the most recent delivery failure
        now: Reference time for the recent-error window
    """
    if disabled:
        health = EndpointHealthStatus.UNHEALTHY
    elif rate >= HEALTHY_THRESHOLD:
        health = EndpointHealthStatus.HEALTHY
    elif rate >= DEGRADED_THRESHOLD:
        health = EndpointHealthStatus.DEGRADED
    else:
        health = EndpointHealthStatus.UNHEALTHY

    if (
        health == EndpointHealthStatus.HEALTHY
        and last_error_at is not None
        and now - last_error_at < RECENT_ERROR_WINDOW
    ):
        health = EndpointHealthStatus.DEGRADED

    return health
