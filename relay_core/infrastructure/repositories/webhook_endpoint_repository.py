"""PostgreSQL implementation of WebhookEndpointRepository."""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.domain.clock import utcnow
from relay_core.domain.entities import WebhookEndpoint, WebhookEndpointStatus
from relay_core.domain.interfaces import WebhookEndpointRepository
from relay_core.infrastructure.database.models import WebhookEndpointModel

from .pagination import fetch_page

# Entity attribute -> mapped attribute, for fields an operator may change
_UPDATABLE_COLUMNS = {
    "url": "url",
    "events": "events",
    "description": "description",
    "metadata": "metadata_",
    "status": "status",
    "secret": "secret",
}


class PostgresWebhookEndpointRepository(WebhookEndpointRepository):
    """
    PostgreSQL-backed webhook endpoint registry.

    Delivery counters and `version` are incremented in SQL so that
    concurrent writers never overwrite each other's updates.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        model = WebhookEndpointModel(
            id=str(endpoint.id),
            workspace_id=endpoint.workspace_id,
            url=endpoint.url,
            secret=endpoint.secret,
            events=list(endpoint.events),
            status=endpoint.status.value,
            description=endpoint.description,
            metadata_=dict(endpoint.metadata),
            success_count=endpoint.success_count,
            failure_count=endpoint.failure_count,
            last_delivery_at=endpoint.last_delivery_at,
            last_delivery_status=endpoint.last_delivery_status,
            last_error_at=endpoint.last_error_at,
            last_error=endpoint.last_error,
            version=endpoint.version,
            created_at=endpoint.created_at,
            updated_at=endpoint.updated_at,
        )

        self._session.add(model)
        await self._session.flush()

        return endpoint

    async def get_by_id(
        self,
        endpoint_id: UUID,
        workspace_id: str | None = None,
    ) -> Optional[WebhookEndpoint]:
        stmt = select(WebhookEndpointModel).where(
            WebhookEndpointModel.id == str(endpoint_id)
        )
        if workspace_id is not None:
            stmt = stmt.where(WebhookEndpointModel.workspace_id == workspace_id)

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
    ) -> Tuple[List[WebhookEndpoint], bool]:
        stmt = select(WebhookEndpointModel).where(
            WebhookEndpointModel.workspace_id == workspace_id
        )
        models, has_more = await fetch_page(
            self._session, stmt, WebhookEndpointModel, limit, cursor
        )
        return [self._to_entity(model) for model in models], has_more

    async def list_by_workspace(self, workspace_id: str) -> List[WebhookEndpoint]:
        stmt = (
            select(WebhookEndpointModel)
            .where(WebhookEndpointModel.workspace_id == workspace_id)
            .order_by(WebhookEndpointModel.created_at.desc())
        )
        result = await self._session.execute(stmt)

        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_active(self, workspace_id: str) -> List[WebhookEndpoint]:
        stmt = select(WebhookEndpointModel).where(
            WebhookEndpointModel.workspace_id == workspace_id,
            WebhookEndpointModel.status == WebhookEndpointStatus.ACTIVE.value,
        )
        result = await self._session.execute(stmt)

        return [self._to_entity(model) for model in result.scalars().all()]

    async def update(
        self,
        workspace_id: str,
        endpoint_id: UUID,
        changes: dict,
    ) -> Optional[WebhookEndpoint]:
        values = {}
        for name, value in changes.items():
            if name not in _UPDATABLE_COLUMNS:
                raise ValueError(f"Endpoint field '{name}' cannot be updated")
            if isinstance(value, WebhookEndpointStatus):
                value = value.value
            values[_UPDATABLE_COLUMNS[name]] = value

        stmt = (
            update(WebhookEndpointModel)
            .where(
                WebhookEndpointModel.id == str(endpoint_id),
                WebhookEndpointModel.workspace_id == workspace_id,
            )
            .values(
                **values,
                version=WebhookEndpointModel.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            return None

        # Drop stale identity-map state so the read sees the new row
        self._session.expire_all()
        return await self.get_by_id(endpoint_id, workspace_id)

    async def delete(self, workspace_id: str, endpoint_id: UUID) -> bool:
        stmt = delete(WebhookEndpointModel).where(
            WebhookEndpointModel.id == str(endpoint_id),
            WebhookEndpointModel.workspace_id == workspace_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def record_success(
        self,
        endpoint_id: UUID,
        status_code: int,
        at: datetime,
    ) -> None:
        stmt = (
            update(WebhookEndpointModel)
            .where(WebhookEndpointModel.id == str(endpoint_id))
            .values(
                success_count=WebhookEndpointModel.success_count + 1,
                last_delivery_at=at,
                last_delivery_status=status_code,
                version=WebhookEndpointModel.version + 1,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def record_failure(
        self,
        endpoint_id: UUID,
        error: str,
        at: datetime,
    ) -> None:
        stmt = (
            update(WebhookEndpointModel)
            .where(WebhookEndpointModel.id == str(endpoint_id))
            .values(
                failure_count=WebhookEndpointModel.failure_count + 1,
                last_error_at=at,
                last_error=error,
                version=WebhookEndpointModel.version + 1,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    def _to_entity(self, model: WebhookEndpointModel) -> WebhookEndpoint:
        return WebhookEndpoint(
            id=UUID(model.id),
            workspace_id=model.workspace_id,
            url=model.url,
            secret=model.secret,
            events=list(model.events or []),
            status=WebhookEndpointStatus(model.status),
            description=model.description,
            metadata=dict(model.metadata_ or {}),
            success_count=model.success_count,
            failure_count=model.failure_count,
            last_delivery_at=model.last_delivery_at,
            last_delivery_status=model.last_delivery_status,
            last_error_at=model.last_error_at,
            last_error=model.last_error,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
