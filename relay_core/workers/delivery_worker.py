"""In-process background worker driving webhook delivery and key cleanup."""

import asyncio
from typing import Callable, Optional

import structlog

from relay_core.application.services import DeliveryDispatcher
from relay_core.core.config import settings
from relay_core.domain.clock import utcnow
from relay_core.domain.interfaces import UnitOfWork

logger = structlog.get_logger(__name__)


async def purge_expired_idempotency_keys(uow_factory: Callable[[], UnitOfWork]) -> int:
    """Delete idempotency records whose expiry has passed."""
    async with uow_factory() as uow:
        deleted = await uow.idempotency.delete_expired(utcnow())

    if deleted:
        logger.info("idempotency_keys_purged", deleted=deleted)

    return deleted


class DeliveryWorker:
    """
    Runs the dispatcher poll loop and the idempotency cleanup loop as
    asyncio tasks for the lifetime of the application.

    A failing cleanup sweep is logged and retried on the next interval.
    """

    def __init__(
        self,
        dispatcher: DeliveryDispatcher,
        uow_factory: Callable[[], UnitOfWork],
        poll_interval: Optional[float] = None,
        cleanup_interval: Optional[float] = None,
    ):
        self._dispatcher = dispatcher
        self._uow = uow_factory
        self._poll_interval = poll_interval or settings.webhook_poll_interval_seconds
        self._cleanup_interval = cleanup_interval or settings.idempotency_cleanup_interval_seconds
        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self.running:
            return

        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(
                self._dispatcher.run_forever(self._poll_interval, self._stop_event),
                name="webhook_dispatcher",
            ),
            asyncio.create_task(self._cleanup_loop(), name="idempotency_cleanup"),
        ]
        logger.info(
            "background_worker_started",
            poll_interval=self._poll_interval,
            cleanup_interval=self._cleanup_interval,
        )

    async def stop(self) -> None:
        """Signal both loops to finish and wait for them."""
        self._stop_event.set()

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._tasks = []
        logger.info("background_worker_stopped")

    async def _cleanup_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await purge_expired_idempotency_keys(self._uow)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("idempotency_cleanup_failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._cleanup_interval)
            except asyncio.TimeoutError:
                pass
