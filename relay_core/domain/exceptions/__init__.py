"""Domain Exceptions - Business rule violations and domain errors."""

from .base import DomainException
from .idempotency import (
    InvalidIdempotencyKeyException,
    RequestInProgressException,
    IdempotencyKeyConflictException,
)
from .webhook import (
    WebhookEndpointNotFoundException,
    InvalidWebhookEndpointException,
    DeadLetterEventNotFoundException,
)
from .tenancy import WorkspaceRequiredException
from .storage import DuplicateKeyError

__all__ = [
    "DomainException",
    "InvalidIdempotencyKeyException",
    "RequestInProgressException",
    "IdempotencyKeyConflictException",
    "WebhookEndpointNotFoundException",
    "InvalidWebhookEndpointException",
    "DeadLetterEventNotFoundException",
    "WorkspaceRequiredException",
    "DuplicateKeyError",
]
