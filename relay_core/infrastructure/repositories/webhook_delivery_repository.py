"""PostgreSQL implementation of WebhookDeliveryRepository."""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.domain.entities import WebhookDelivery, WebhookDeliveryStatus
from relay_core.domain.exceptions import DuplicateKeyError
from relay_core.domain.interfaces import WebhookDeliveryRepository
from relay_core.infrastructure.database.models import WebhookEventModel

from .pagination import fetch_page

_PENDING = WebhookDeliveryStatus.PENDING.value


class PostgresWebhookDeliveryRepository(WebhookDeliveryRepository):
    """
    PostgreSQL-backed delivery records.

    A delivery is worked on only by the worker holding its lease
    (`locked_by` until `locked_until`). Every state write releases the lease.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, delivery: WebhookDelivery) -> WebhookDelivery:
        model = WebhookEventModel(
            id=str(delivery.id),
            workspace_id=delivery.workspace_id,
            endpoint_id=str(delivery.endpoint_id),
            outbox_event_id=str(delivery.outbox_event_id) if delivery.outbox_event_id else None,
            fanout_key=delivery.fanout_key,
            event_type=delivery.event_type,
            payload=delivery.payload,
            status=delivery.status.value,
            attempts=delivery.attempts,
            next_retry_at=delivery.next_retry_at,
            response=delivery.response,
            created_at=delivery.created_at,
        )

        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError(delivery.fanout_key or str(delivery.id)) from e

        return delivery

    async def get_by_id(
        self,
        delivery_id: UUID,
        workspace_id: str | None = None,
    ) -> Optional[WebhookDelivery]:
        stmt = select(WebhookEventModel).where(WebhookEventModel.id == str(delivery_id))
        if workspace_id is not None:
            stmt = stmt.where(WebhookEventModel.workspace_id == workspace_id)

        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_entity(model)

    async def list_for_outbox_event(self, outbox_event_id: UUID) -> List[WebhookDelivery]:
        stmt = select(WebhookEventModel).where(
            WebhookEventModel.outbox_event_id == str(outbox_event_id)
        )
        result = await self._session.execute(stmt)

        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_due(self, now: datetime, limit: int = 50) -> List[WebhookDelivery]:
        stmt = (
            select(WebhookEventModel)
            .where(
                WebhookEventModel.status == _PENDING,
                or_(
                    WebhookEventModel.next_retry_at.is_(None),
                    WebhookEventModel.next_retry_at <= now,
                ),
                or_(
                    WebhookEventModel.locked_until.is_(None),
                    WebhookEventModel.locked_until < now,
                ),
            )
            .order_by(WebhookEventModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)

        return [self._to_entity(model) for model in result.scalars().all()]

    async def claim(
        self,
        delivery_id: UUID,
        worker_id: str,
        now: datetime,
        lease_until: datetime,
    ) -> bool:
        # Conditional update: only one worker can move the lease forward
        stmt = (
            update(WebhookEventModel)
            .where(
                WebhookEventModel.id == str(delivery_id),
                WebhookEventModel.status == _PENDING,
                or_(
                    WebhookEventModel.locked_until.is_(None),
                    WebhookEventModel.locked_until < now,
                ),
            )
            .values(locked_by=worker_id, locked_until=lease_until)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def mark_delivered(
        self,
        delivery_id: UUID,
        worker_id: str,
        attempts: int,
        response: dict,
        at: datetime,
    ) -> bool:
        return await self._write(
            delivery_id,
            worker_id,
            status=WebhookDeliveryStatus.DELIVERED.value,
            attempts=attempts,
            response=response,
            last_attempt_at=at,
            delivered_at=at,
            next_retry_at=None,
        )

    async def mark_retry(
        self,
        delivery_id: UUID,
        worker_id: str,
        attempts: int,
        response: dict,
        next_retry_at: datetime,
        at: datetime,
    ) -> bool:
        return await self._write(
            delivery_id,
            worker_id,
            status=_PENDING,
            attempts=attempts,
            response=response,
            last_attempt_at=at,
            next_retry_at=next_retry_at,
        )

    async def mark_dead_letter(
        self,
        delivery_id: UUID,
        worker_id: str,
        attempts: int,
        response: dict,
        at: datetime,
    ) -> bool:
        return await self._write(
            delivery_id,
            worker_id,
            status=WebhookDeliveryStatus.DEAD_LETTER.value,
            attempts=attempts,
            response=response,
            last_attempt_at=at,
            next_retry_at=None,
        )

    async def mark_failed(self, delivery_id: UUID, worker_id: str, response: dict) -> bool:
        return await self._write(
            delivery_id,
            worker_id,
            status=WebhookDeliveryStatus.FAILED.value,
            response=response,
            next_retry_at=None,
        )

    async def _write(self, delivery_id: UUID, worker_id: str, **values) -> bool:
        # A worker whose lease was taken over must not record its outcome
        stmt = (
            update(WebhookEventModel)
            .where(
                WebhookEventModel.id == str(delivery_id),
                WebhookEventModel.status == _PENDING,
                WebhookEventModel.locked_by == worker_id,
            )
            .values(**values, locked_by=None, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_recent(
        self,
        workspace_id: str,
        limit: int,
        cursor: UUID | None = None,
        endpoint_id: UUID | None = None,
        status: WebhookDeliveryStatus | None = None,
    ) -> Tuple[List[WebhookDelivery], bool]:
        stmt = select(WebhookEventModel).where(WebhookEventModel.workspace_id == workspace_id)
        if endpoint_id is not None:
            stmt = stmt.where(WebhookEventModel.endpoint_id == str(endpoint_id))
        if status is not None:
            stmt = stmt.where(WebhookEventModel.status == status.value)

        models, has_more = await fetch_page(
            self._session, stmt, WebhookEventModel, limit, cursor
        )
        return [self._to_entity(model) for model in models], has_more

    async def count_by_status(
        self,
        workspace_id: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, int]:
        stmt = (
            select(WebhookEventModel.status, func.count(WebhookEventModel.id))
            .where(
                WebhookEventModel.workspace_id == workspace_id,
                WebhookEventModel.created_at >= start,
                WebhookEventModel.created_at <= end,
            )
            .group_by(WebhookEventModel.status)
        )
        result = await self._session.execute(stmt)

        return {status: count for status, count in result.all()}

    async def average_attempts(
        self,
        workspace_id: str,
        status: WebhookDeliveryStatus,
        start: datetime,
        end: datetime,
    ) -> float | None:
        stmt = select(func.avg(WebhookEventModel.attempts)).where(
            WebhookEventModel.workspace_id == workspace_id,
            WebhookEventModel.status == status.value,
            WebhookEventModel.created_at >= start,
            WebhookEventModel.created_at <= end,
        )
        result = await self._session.execute(stmt)
        average = result.scalar_one_or_none()

        return float(average) if average is not None else None

    async def count_by_event_type(
        self,
        workspace_id: str,
        start: datetime,
        end: datetime,
    ) -> List[Tuple[str, str, int]]:
        stmt = (
            select(
                WebhookEventModel.event_type,
                WebhookEventModel.status,
                func.count(WebhookEventModel.id),
            )
            .where(
                WebhookEventModel.workspace_id == workspace_id,
                WebhookEventModel.created_at >= start,
                WebhookEventModel.created_at <= end,
            )
            .group_by(WebhookEventModel.event_type, WebhookEventModel.status)
        )
        result = await self._session.execute(stmt)

        return [(event_type, status, count) for event_type, status, count in result.all()]

    async def count_pending_by_endpoint(self, workspace_id: str) -> dict[UUID, int]:
        stmt = (
            select(WebhookEventModel.endpoint_id, func.count(WebhookEventModel.id))
            .where(
                WebhookEventModel.workspace_id == workspace_id,
                WebhookEventModel.status == _PENDING,
            )
            .group_by(WebhookEventModel.endpoint_id)
        )
        result = await self._session.execute(stmt)

        return {UUID(str(endpoint_id)): count for endpoint_id, count in result.all()}

    def _to_entity(self, model: WebhookEventModel) -> WebhookDelivery:
        return WebhookDelivery(
            id=UUID(model.id),
            workspace_id=model.workspace_id,
            endpoint_id=UUID(model.endpoint_id),
            outbox_event_id=UUID(model.outbox_event_id) if model.outbox_event_id else None,
            fanout_key=model.fanout_key,
            event_type=model.event_type,
            payload=model.payload,
            status=WebhookDeliveryStatus(model.status),
            attempts=model.attempts,
            next_retry_at=model.next_retry_at,
            last_attempt_at=model.last_attempt_at,
            delivered_at=model.delivered_at,
            response=model.response,
            created_at=model.created_at,
        )
