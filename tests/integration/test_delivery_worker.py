"""Integration tests for the in-process background worker."""

import asyncio

import pytest

from relay_core.domain.entities import OutboxEventStatus
from relay_core.workers import DeliveryWorker


async def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not await predicate():
        assert asyncio.get_running_loop().time() < deadline, "condition not reached in time"
        await asyncio.sleep(0.02)


class TestDeliveryWorker:
    """Tests for the dispatcher and cleanup loops."""

    @pytest.mark.asyncio
    async def test_delivers_in_background_and_stops(
        self,
        dispatcher,
        uow_factory,
        webhook_client,
        make_endpoint,
        publish_event,
    ):
        await make_endpoint()
        event = await publish_event()

        worker = DeliveryWorker(dispatcher, uow_factory, poll_interval=0.05, cleanup_interval=60)
        worker.start()
        assert worker.running

        async def processed() -> bool:
            async with uow_factory() as uow:
                stored = await uow.outbox.get_by_id(event.id)
            return stored.status == OutboxEventStatus.PROCESSED

        try:
            await wait_until(processed)
        finally:
            await worker.stop()

        assert not worker.running
        assert len(webhook_client.calls) == 1

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_set_of_loops(self, dispatcher, uow_factory):
        worker = DeliveryWorker(dispatcher, uow_factory, poll_interval=0.05, cleanup_interval=60)

        worker.start()
        tasks = list(worker._tasks)
        worker.start()

        assert worker._tasks == tasks
        await worker.stop()
