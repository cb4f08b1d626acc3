"""PostgreSQL implementation of DeadLetterRepository."""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.domain.entities import DeadLetterEvent
from relay_core.domain.interfaces import DeadLetterRepository
from relay_core.infrastructure.database.models import DeadLetterEventModel

from .pagination import fetch_page


class PostgresDeadLetterRepository(DeadLetterRepository):
    """PostgreSQL-backed dead letter store."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, event: DeadLetterEvent) -> DeadLetterEvent:
        model = DeadLetterEventModel(
            id=str(event.id),
            workspace_id=event.workspace_id,
            original_event_id=str(event.original_event_id),
            outbox_event_id=str(event.outbox_event_id) if event.outbox_event_id else None,
            endpoint_id=str(event.endpoint_id),
            event_type=event.event_type,
            payload=event.payload,
            failure_reason=event.failure_reason,
            attempts=event.attempts,
            last_attempt_at=event.last_attempt_at,
            created_at=event.created_at,
        )

        self._session.add(model)
        await self._session.flush()

        return event

    async def get_by_id(
        self,
        dead_letter_id: UUID,
        workspace_id: str,
    ) -> Optional[DeadLetterEvent]:
        stmt = select(DeadLetterEventModel).where(
            DeadLetterEventModel.id == str(dead_letter_id),
            DeadLetterEventModel.workspace_id == workspace_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_entity(model)

    async def list_page(
        self,
        workspace_id: str,
        limit: int,
        cursor: UUID | None = None,
        endpoint_id: UUID | None = None,
    ) -> Tuple[List[DeadLetterEvent], bool]:
        stmt = select(DeadLetterEventModel).where(
            DeadLetterEventModel.workspace_id == workspace_id
        )
        if endpoint_id is not None:
            stmt = stmt.where(DeadLetterEventModel.endpoint_id == str(endpoint_id))

        models, has_more = await fetch_page(
            self._session, stmt, DeadLetterEventModel, limit, cursor
        )
        return [self._to_entity(model) for model in models], has_more

    async def delete(self, dead_letter_id: UUID) -> bool:
        stmt = delete(DeadLetterEventModel).where(
            DeadLetterEventModel.id == str(dead_letter_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    def _to_entity(self, model: DeadLetterEventModel) -> DeadLetterEvent:
        return DeadLetterEvent(
            id=UUID(model.id),
            workspace_id=model.workspace_id,
            original_event_id=UUID(model.original_event_id),
            outbox_event_id=UUID(model.outbox_event_id) if model.outbox_event_id else None,
            endpoint_id=UUID(model.endpoint_id),
            event_type=model.event_type,
            payload=model.payload,
            failure_reason=model.failure_reason,
            attempts=model.attempts,
            last_attempt_at=model.last_attempt_at,
            created_at=model.created_at,
        )
