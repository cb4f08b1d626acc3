"""PostgreSQL implementation of IdempotencyRepository."""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.domain.entities import CachedResponse, IdempotencyRecord
from relay_core.domain.exceptions import DuplicateKeyError
from relay_core.domain.interfaces import IdempotencyRepository
from relay_core.infrastructure.database.models import IdempotencyKeyModel


class PostgresIdempotencyRepository(IdempotencyRepository):
    """
    Idempotency claims keyed by the composite key.

    The primary key constraint decides which concurrent request wins a
    claim, so `create` never reads before it writes.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, record: IdempotencyRecord) -> IdempotencyRecord:
        model = IdempotencyKeyModel(
            key=record.key,
            workspace_id=record.workspace_id,
            request_method=record.request_method,
            request_path=record.request_path,
            response=None,
            expires_at=record.expires_at,
            created_at=record.created_at,
        )

        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError(record.key) from e

        return record

    async def get(self, key: str) -> Optional[IdempotencyRecord]:
        stmt = select(IdempotencyKeyModel).where(IdempotencyKeyModel.key == key)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_entity(model)

    async def save_response(self, key: str, response: CachedResponse) -> None:
        stmt = (
            update(IdempotencyKeyModel)
            .where(IdempotencyKeyModel.key == key)
            .values(response=response.to_dict())
        )
        await self._session.execute(stmt)

    async def delete(self, key: str) -> bool:
        stmt = delete(IdempotencyKeyModel).where(IdempotencyKeyModel.key == key)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(IdempotencyKeyModel).where(IdempotencyKeyModel.expires_at < now)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    def _to_entity(self, model: IdempotencyKeyModel) -> IdempotencyRecord:
        return IdempotencyRecord(
            key=model.key,
            workspace_id=model.workspace_id,
            request_method=model.request_method,
            request_path=model.request_path,
            expires_at=model.expires_at,
            response=CachedResponse.from_dict(model.response) if model.response else None,
            created_at=model.created_at,
        )
