"""Database infrastructure."""

from .connection import get_db_session, DatabaseSessionManager, db_manager
from .models import (
    Base,
    OutboxEventModel,
    WebhookEndpointModel,
    WebhookEventModel,
    DeadLetterEventModel,
    IdempotencyKeyModel,
)

__all__ = [
    "get_db_session",
    "DatabaseSessionManager",
    "db_manager",
    "Base",
    "OutboxEventModel",
    "WebhookEndpointModel",
    "WebhookEventModel",
    "DeadLetterEventModel",
    "IdempotencyKeyModel",
]
