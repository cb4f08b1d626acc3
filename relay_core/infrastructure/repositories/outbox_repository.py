"""PostgreSQL implementation of OutboxRepository."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.domain.clock import utcnow
from relay_core.domain.entities import OutboxEvent, OutboxEventStatus, WebhookDeliveryStatus
from relay_core.domain.interfaces import OutboxRepository
from relay_core.infrastructure.database.models import OutboxEventModel, WebhookEventModel


class PostgresOutboxRepository(OutboxRepository):
    """
    PostgreSQL implementation of the outbox.

    Writes go through the caller's session; committing is the caller's
    responsibility so the event shares the domain change's transaction.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, event: OutboxEvent) -> OutboxEvent:
        model = OutboxEventModel(
            id=str(event.id),
            workspace_id=event.workspace_id,
            event_type=event.event_type,
            aggregate_type=event.aggregate_type,
            aggregate_id=event.aggregate_id,
            payload=event.payload,
            status=OutboxEventStatus.PENDING.value,
            created_at=event.created_at,
        )

        self._session.add(model)
        await self._session.flush()

        return event

    async def get_by_id(self, event_id: UUID) -> Optional[OutboxEvent]:
        stmt = select(OutboxEventModel).where(OutboxEventModel.id == str(event_id))
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_entity(model)

    async def list_pending(self, limit: int = 100) -> List[OutboxEvent]:
        stmt = (
            select(OutboxEventModel)
            .where(
                OutboxEventModel.status == OutboxEventStatus.PENDING.value,
                OutboxEventModel.fanned_out_at.is_(None),
            )
            .order_by(OutboxEventModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)

        return [self._to_entity(model) for model in result.scalars().all()]

    async def mark_fanned_out(self, event_id: UUID, at: datetime) -> bool:
        stmt = (
            update(OutboxEventModel)
            .where(
                OutboxEventModel.id == str(event_id),
                OutboxEventModel.fanned_out_at.is_(None),
            )
            .values(fanned_out_at=at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_settleable(self, limit: int = 100) -> List[OutboxEvent]:
        unfinished = (
            select(WebhookEventModel.id)
            .where(
                WebhookEventModel.outbox_event_id == OutboxEventModel.id,
                WebhookEventModel.status == WebhookDeliveryStatus.PENDING.value,
            )
            .exists()
        )
        stmt = (
            select(OutboxEventModel)
            .where(
                OutboxEventModel.status == OutboxEventStatus.PENDING.value,
                OutboxEventModel.fanned_out_at.is_not(None),
                ~unfinished,
            )
            .order_by(OutboxEventModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)

        return [self._to_entity(model) for model in result.scalars().all()]

    async def mark_processed(self, event_id: UUID) -> bool:
        return await self._transition(
            event_id,
            status=OutboxEventStatus.PROCESSED.value,
            processed_at=utcnow(),
        )

    async def mark_failed(self, event_id: UUID) -> bool:
        return await self._transition(event_id, status=OutboxEventStatus.FAILED.value)

    async def _transition(self, event_id: UUID, **values) -> bool:
        """Leave pending exactly once; a second transition matches no row."""
        stmt = (
            update(OutboxEventModel)
            .where(
                OutboxEventModel.id == str(event_id),
                OutboxEventModel.status == OutboxEventStatus.PENDING.value,
            )
            .values(**values)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    def _to_entity(self, model: OutboxEventModel) -> OutboxEvent:
        return OutboxEvent(
            id=UUID(model.id),
            workspace_id=model.workspace_id,
            event_type=model.event_type,
            aggregate_type=model.aggregate_type,
            aggregate_id=model.aggregate_id,
            payload=model.payload,
            status=OutboxEventStatus(model.status),
            created_at=model.created_at,
            processed_at=model.processed_at,
            fanned_out_at=model.fanned_out_at,
        )
