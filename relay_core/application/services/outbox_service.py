"""Outbox service - records domain events for webhook delivery."""

from typing import Any

import structlog

from relay_core.domain.entities import OutboxEvent
from relay_core.domain.interfaces import OutboxRepository

logger = structlog.get_logger(__name__)


class OutboxService:
    """
    Producer-facing entry point to the transactional outbox.

    The repository must be bound to the same session as the business
    change being described, so the event commits or rolls back with it.
    """

    def __init__(self, outbox_repository: OutboxRepository):
        self._outbox_repo = outbox_repository

    async def publish(
        self,
        workspace_id: str,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict[str, Any],
    ) -> OutboxEvent:
        """
        Append a pending event to the outbox.

        Args:
            workspace_id: Tenant owning the event
            event_type: Dot-namespaced event type, e.g. ``subscription.created``
            aggregate_type: Kind of entity that changed
            aggregate_id: Identifier of the entity that changed
            payload: Event data delivered as the envelope's ``data``

        Returns:
            The appended event
        """
        event = OutboxEvent(
            workspace_id=workspace_id,
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
        )

        await self._outbox_repo.append(event)

        logger.info(
            "outbox_event_appended",
            event_id=str(event.id),
            workspace_id=workspace_id,
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
        )

        return event
