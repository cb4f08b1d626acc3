"""Data Transfer Objects for the application layer."""

from .pagination import Page
from .webhook import (
    CreateWebhookEndpointRequest,
    DeadLetterDTO,
    WebhookDeliveryDTO,
    WebhookEndpointDTO,
    WebhookEndpointSecretDTO,
    isoformat,
)
from .monitoring import DeliveryStatsDTO, EndpointHealthDTO, EventTypeStatsDTO

__all__ = [
    "Page",
    "CreateWebhookEndpointRequest",
    "DeadLetterDTO",
    "WebhookDeliveryDTO",
    "WebhookEndpointDTO",
    "WebhookEndpointSecretDTO",
    "isoformat",
    "DeliveryStatsDTO",
    "EndpointHealthDTO",
    "EventTypeStatsDTO",
]
