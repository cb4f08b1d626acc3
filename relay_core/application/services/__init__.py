"""Application services implementing the delivery and registry use cases."""

from .outbox_service import OutboxService
from .webhook_endpoint_service import WebhookEndpointService
from .delivery_dispatcher import DeliveryDispatcher, DispatchCycleResult
from .dead_letter_service import DeadLetterService
from .monitoring_service import MonitoringService

__all__ = [
    "OutboxService",
    "WebhookEndpointService",
    "DeliveryDispatcher",
    "DispatchCycleResult",
    "DeadLetterService",
    "MonitoringService",
]
