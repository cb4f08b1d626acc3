"""Dead letter service - inspection and operator re-queue of exhausted deliveries."""

from typing import Optional
from uuid import UUID

import structlog

from relay_core.application.dto import DeadLetterDTO, Page
from relay_core.domain.entities import WebhookDelivery
from relay_core.domain.exceptions import DeadLetterEventNotFoundException
from relay_core.domain.interfaces import (
    DeadLetterRepository,
    WebhookDeliveryRepository,
    WebhookEndpointRepository,
)

logger = structlog.get_logger(__name__)


class DeadLetterService:
    """
    Application service for the dead letter store.

    All three repositories must share one session: a retry creates the new
    delivery and removes the dead letter in a single transaction.
    """

    def __init__(
        self,
        dead_letter_repository: DeadLetterRepository,
        delivery_repository: WebhookDeliveryRepository,
        endpoint_repository: WebhookEndpointRepository,
    ):
        self._dead_letter_repo = dead_letter_repository
        self._delivery_repo = delivery_repository
        self._endpoint_repo = endpoint_repository

    async def list_dead_letters(
        self,
        workspace_id: str,
        limit: int = 20,
        cursor: Optional[UUID] = None,
        endpoint_id: Optional[UUID] = None,
    ) -> Page[DeadLetterDTO]:
        """List dead letters newest first, each with its endpoint's URL."""
        events, has_more = await self._dead_letter_repo.list_page(
            workspace_id, limit, cursor, endpoint_id
        )

        endpoint_urls = {
            endpoint.id: endpoint.url
            for endpoint in await self._endpoint_repo.list_by_workspace(workspace_id)
        }

        return Page.build(
            [
                DeadLetterDTO.from_entity(event, endpoint_urls.get(event.endpoint_id))
                for event in events
            ],
            has_more,
            lambda dto: dto.id,
        )

    async def retry(self, workspace_id: str, dead_letter_id: UUID) -> str:
        """
        Re-queue a dead letter as a fresh pending delivery.

        The new delivery starts with zero attempts and keeps the original
        outbox event id, so receivers see the same envelope id again.
        Endpoint status is checked by the dispatcher, not here.

        Returns:
            The new delivery id

        Raises:
            DeadLetterEventNotFoundException: If the dead letter does not exist
        """
        event = await self._dead_letter_repo.get_by_id(dead_letter_id, workspace_id)

        if event is None:
            logger.warning(
                "dead_letter_not_found",
                dead_letter_id=str(dead_letter_id),
                workspace_id=workspace_id,
            )
            raise DeadLetterEventNotFoundException(str(dead_letter_id))

        delivery = WebhookDelivery(
            workspace_id=event.workspace_id,
            endpoint_id=event.endpoint_id,
            event_type=event.event_type,
            payload=event.payload,
            outbox_event_id=event.outbox_event_id,
        )
        await self._delivery_repo.create(delivery)
        await self._dead_letter_repo.delete(event.id)

        logger.info(
            "dead_letter_requeued",
            dead_letter_id=str(event.id),
            delivery_id=str(delivery.id),
            endpoint_id=str(event.endpoint_id),
            workspace_id=workspace_id,
        )

        return str(delivery.id)
