"""DeadLetterEvent entity."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from relay_core.domain.clock import utcnow


@dataclass
class DeadLetterEvent:
    """A delivery that exhausted its retry budget, kept for inspection or replay."""

    workspace_id: str
    original_event_id: UUID
    endpoint_id: UUID
    event_type: str
    payload: dict[str, Any]
    failure_reason: str
    attempts: int
    last_attempt_at: datetime
    id: UUID = field(default_factory=uuid4)
    outbox_event_id: UUID | None = None
    created_at: datetime = field(default_factory=utcnow)
