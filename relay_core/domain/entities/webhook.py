"""Webhook endpoint and delivery entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from relay_core.domain.clock import utcnow

WILDCARD_EVENT = "*"


class WebhookEndpointStatus(str, Enum):
    """Status of a registered webhook endpoint."""

    ACTIVE = "active"
    DISABLED = "disabled"


class WebhookDeliveryStatus(str, Enum):
    """Status of a per-endpoint delivery."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


TERMINAL_DELIVERY_STATUSES = frozenset(
    {
        WebhookDeliveryStatus.DELIVERED,
        WebhookDeliveryStatus.FAILED,
        WebhookDeliveryStatus.DEAD_LETTER,
    }
)


@dataclass
class WebhookEndpoint:
    """
    A tenant-registered delivery target.

    The counters and last-delivery fields are maintained by the dispatcher
    with storage-side increments; `version` grows on every mutation.
    """

    workspace_id: str
    url: str
    secret: str
    events: list[str]
    id: UUID = field(default_factory=uuid4)
    status: WebhookEndpointStatus = WebhookEndpointStatus.ACTIVE
    description: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    success_count: int = 0
    failure_count: int = 0
    last_delivery_at: datetime | None = None
    last_delivery_status: int | None = None
    last_error_at: datetime | None = None
    last_error: str | None = None
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == WebhookEndpointStatus.ACTIVE

    def matches(self, event_type: str) -> bool:
        """An endpoint matches on the exact event type or the `*` wildcard."""
        return event_type in self.events or WILDCARD_EVENT in self.events


@dataclass
class WebhookDelivery:
    """
    One (event, endpoint) delivery and its retry state.

    `fanout_key` is set when the delivery was fanned out from an outbox
    event and is unique, so concurrent dispatchers cannot create the same
    pair twice. Operator re-queues carry no fanout key.
    """

    workspace_id: str
    endpoint_id: UUID
    event_type: str
    payload: dict[str, Any]
    id: UUID = field(default_factory=uuid4)
    outbox_event_id: UUID | None = None
    fanout_key: str | None = None
    status: WebhookDeliveryStatus = WebhookDeliveryStatus.PENDING
    attempts: int = 0
    next_retry_at: datetime | None = None
    last_attempt_at: datetime | None = None
    delivered_at: datetime | None = None
    response: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_DELIVERY_STATUSES

    @property
    def envelope_id(self) -> UUID:
        """Id receivers deduplicate on; stable across dead letter re-queues."""
        return self.outbox_event_id or self.id


def build_fanout_key(outbox_event_id: UUID, endpoint_id: UUID) -> str:
    return f"{outbox_event_id}:{endpoint_id}"


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a single HTTP callback attempt."""

    status_code: int | None
    duration_ms: int
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def failure_reason(self) -> str:
        if self.error:
            return self.error
        return f"HTTP {self.status_code}"
