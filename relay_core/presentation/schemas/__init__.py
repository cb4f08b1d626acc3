"""Pydantic schemas for API request/response validation."""

from .base import CamelModel
from .webhook import (
    CreateWebhookEndpointSchema,
    UpdateWebhookEndpointSchema,
    WebhookEndpointSchema,
    WebhookEndpointWithSecretSchema,
    WebhookEndpointListSchema,
)
from .monitoring import (
    DeliveryStatsSchema,
    EndpointHealthSchema,
    WebhookEventSchema,
    WebhookEventListSchema,
    DeadLetterEventSchema,
    DeadLetterEventListSchema,
    DeadLetterRetrySchema,
    EventTypeStatsSchema,
)
from .error import ErrorResponseSchema

__all__ = [
    "CamelModel",
    "CreateWebhookEndpointSchema",
    "UpdateWebhookEndpointSchema",
    "WebhookEndpointSchema",
    "WebhookEndpointWithSecretSchema",
    "WebhookEndpointListSchema",
    "DeliveryStatsSchema",
    "EndpointHealthSchema",
    "WebhookEventSchema",
    "WebhookEventListSchema",
    "DeadLetterEventSchema",
    "DeadLetterEventListSchema",
    "DeadLetterRetrySchema",
    "EventTypeStatsSchema",
    "ErrorResponseSchema",
]
