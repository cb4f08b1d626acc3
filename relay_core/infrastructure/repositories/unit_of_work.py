"""SQLAlchemy unit of work over the delivery repositories."""

from contextlib import AbstractAsyncContextManager
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.domain.interfaces import UnitOfWork
from relay_core.infrastructure.database.connection import db_manager

from .dead_letter_repository import PostgresDeadLetterRepository
from .idempotency_repository import PostgresIdempotencyRepository
from .outbox_repository import PostgresOutboxRepository
from .webhook_delivery_repository import PostgresWebhookDeliveryRepository
from .webhook_endpoint_repository import PostgresWebhookEndpointRepository

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Opens a session from `session_scope` and binds every repository to it.

    `session_scope` defaults to `db_manager.session`, which commits on a
    clean exit and rolls back on error.
    """

    def __init__(self, session_scope: SessionScope | None = None):
        self._session_scope = session_scope or db_manager.session
        self._scope: AbstractAsyncContextManager[AsyncSession] | None = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self._scope = self._session_scope()
        session = await self._scope.__aenter__()

        self.outbox = PostgresOutboxRepository(session)
        self.endpoints = PostgresWebhookEndpointRepository(session)
        self.deliveries = PostgresWebhookDeliveryRepository(session)
        self.dead_letters = PostgresDeadLetterRepository(session)
        self.idempotency = PostgresIdempotencyRepository(session)

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        scope, self._scope = self._scope, None
        await scope.__aexit__(exc_type, exc_val, exc_tb)


def unit_of_work_factory(session_scope: SessionScope | None = None) -> Callable[[], UnitOfWork]:
    """Build a zero-argument factory producing fresh units of work."""

    def factory() -> UnitOfWork:
        return SqlAlchemyUnitOfWork(session_scope)

    return factory
