"""
Domain Interfaces (Ports)
"""

from .repositories import (
    OutboxRepository,
    WebhookEndpointRepository,
    WebhookDeliveryRepository,
    DeadLetterRepository,
    IdempotencyRepository,
    UnitOfWork,
)
from .clients import WebhookClient

__all__ = [
    "OutboxRepository",
    "WebhookEndpointRepository",
    "WebhookDeliveryRepository",
    "DeadLetterRepository",
    "IdempotencyRepository",
    "UnitOfWork",
    "WebhookClient",
]
