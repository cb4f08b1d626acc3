"""Domain Entities - Core delivery and idempotency objects."""

from .outbox import OutboxEvent, OutboxEventStatus
from .webhook import (
    DeliveryResult,
    TERMINAL_DELIVERY_STATUSES,
    WILDCARD_EVENT,
    WebhookDelivery,
    WebhookDeliveryStatus,
    WebhookEndpoint,
    WebhookEndpointStatus,
    build_fanout_key,
)
from .dead_letter import DeadLetterEvent
from .idempotency import (
    IDEMPOTENCY_KEY_MAX_LENGTH,
    CachedResponse,
    IdempotencyRecord,
    build_composite_key,
)

__all__ = [
    "DeliveryResult",
    "OutboxEvent",
    "OutboxEventStatus",
    "TERMINAL_DELIVERY_STATUSES",
    "WILDCARD_EVENT",
    "WebhookDelivery",
    "WebhookDeliveryStatus",
    "WebhookEndpoint",
    "WebhookEndpointStatus",
    "build_fanout_key",
    "DeadLetterEvent",
    "IDEMPOTENCY_KEY_MAX_LENGTH",
    "CachedResponse",
    "IdempotencyRecord",
    "build_composite_key",
]
