"""OutboxEvent entity for the transactional outbox."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from relay_core.domain.clock import utcnow


class OutboxEventStatus(str, Enum):
    """Status of an outbox event."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass
class OutboxEvent:
    """
    A domain event recorded in the same transaction as the change it describes.

    Outbox events are append-only. The dispatcher stamps `fanned_out_at`
    once the per-endpoint deliveries exist, and later applies the single
    pending -> processed|failed transition.
    """

    workspace_id: str
    event_type: str
    aggregate_type: str
    aggregate_id: str
    payload: dict[str, Any]
    id: UUID = field(default_factory=uuid4)
    status: OutboxEventStatus = OutboxEventStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None
    fanned_out_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == OutboxEventStatus.PENDING
