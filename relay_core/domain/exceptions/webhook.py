"""Webhook-related domain exceptions."""

from .base import DomainException


class WebhookEndpointNotFoundException(DomainException):
    """Raised when a webhook endpoint cannot be found in the workspace."""

    def __init__(self, endpoint_id: str):
        super().__init__(
            message=f"Webhook endpoint not found: {endpoint_id}",
            code="WEBHOOK_ENDPOINT_NOT_FOUND",
        )
        self.endpoint_id = endpoint_id


class InvalidWebhookEndpointException(DomainException):
    """Raised when an endpoint definition is invalid."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="INVALID_WEBHOOK_ENDPOINT",
        )


class DeadLetterEventNotFoundException(DomainException):
    """Raised when a dead letter event cannot be found in the workspace."""

    def __init__(self, dead_letter_id: str):
        super().__init__(
            message=f"Dead letter event not found: {dead_letter_id}",
            code="DEAD_LETTER_EVENT_NOT_FOUND",
        )
        self.dead_letter_id = dead_letter_id
