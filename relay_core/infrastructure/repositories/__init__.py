"""Repository implementations."""

from .dead_letter_repository import PostgresDeadLetterRepository
from .idempotency_repository import PostgresIdempotencyRepository
from .outbox_repository import PostgresOutboxRepository
from .webhook_delivery_repository import PostgresWebhookDeliveryRepository
from .webhook_endpoint_repository import PostgresWebhookEndpointRepository
from .unit_of_work import SqlAlchemyUnitOfWork, unit_of_work_factory

__all__ = [
    "PostgresDeadLetterRepository",
    "PostgresIdempotencyRepository",
    "PostgresOutboxRepository",
    "PostgresWebhookDeliveryRepository",
    "PostgresWebhookEndpointRepository",
    "SqlAlchemyUnitOfWork",
    "unit_of_work_factory",
]
