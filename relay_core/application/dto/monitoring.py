"""Data transfer objects for delivery monitoring views."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DeliveryStatsDTO:
    """Delivery totals for a time window."""

    total_delivered: int
    total_failed: int
    total_pending: int
    total_dead_letter: int
    delivery_rate: int
    average_attempts: float
    start: str
    end: str


@dataclass(frozen=True)
class EndpointHealthDTO:
    id: str
    url: str
    status: str
    health: str
    delivery_rate: int
    success_count: int
    failure_count: int
    pending_events: int
    last_delivery_at: Optional[str]
    last_delivery_status: Optional[int]
    last_error_at: Optional[str]
    last_error: Optional[str]


@dataclass(frozen=True)
class EventTypeStatsDTO:
    event_type: str
    count: int
    delivery_rate: int
