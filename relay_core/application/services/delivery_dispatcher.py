"""Delivery dispatcher - fans outbox events out to endpoints and delivers them."""

import asyncio
import json
import os
import socket
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from urllib.parse import quote
from uuid import UUID, uuid4

import structlog

from relay_core.core.config import settings
from relay_core.core.metrics import (
    record_due_deliveries,
    record_outbox_event,
    record_webhook_dead_letter,
    record_webhook_retry,
    record_webhook_skipped,
    record_webhook_success,
)
from relay_core.domain.clock import utcnow
from relay_core.domain.entities import (
    DeadLetterEvent,
    DeliveryResult,
    OutboxEvent,
    WebhookDelivery,
    WebhookDeliveryStatus,
    WebhookEndpoint,
    build_fanout_key,
)
from relay_core.domain.exceptions import DuplicateKeyError
from relay_core.domain.interfaces import UnitOfWork, WebhookClient
from relay_core.service.webhooks import (
    SIGNATURE_HEADER,
    is_exhausted,
    next_retry_at,
    sign,
)

logger = structlog.get_logger(__name__)

EVENT_ID_HEADER = "X-Relay-Event-Id"
EVENT_TYPE_HEADER = "X-Relay-Event-Type"
DELIVERY_ID_HEADER = "X-Relay-Delivery-Id"

LAST_ERROR_MAX_LENGTH = 1000


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"


@dataclass(frozen=True)
class DispatchCycleResult:
    """What a single poll cycle did."""

    fanned_out: int
    attempted: int
    settled: int = 0


class DeliveryDispatcher:
    """
    Polls the outbox, fans events out to matching endpoints and performs
    signed callbacks with retries.

    Every state change runs in its own short unit of work. Deliveries are
    leased before they are attempted, so several dispatchers may poll the
    same store without delivering a row twice at the same time.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        client: WebhookClient,
        batch_size: int | None = None,
        lease_seconds: int | None = None,
        max_concurrency: int | None = None,
        api_version: str | None = None,
        worker_id: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = uow_factory
        self._client = client
        self._batch_size = batch_size or settings.webhook_batch_size
        self._lease = timedelta(seconds=lease_seconds or settings.webhook_lease_seconds)
        self._max_concurrency = max_concurrency or settings.webhook_max_concurrency
        self._api_version = api_version or settings.api_version
        self._clock = clock
        self.worker_id = worker_id or default_worker_id()

    # =========================================================================
    # Poll cycle
    # =========================================================================

    async def run_once(self) -> DispatchCycleResult:
        """Run the fan-out, delivery and settlement phases once each."""
        fanned_out = await self.fan_out()
        attempted = await self.deliver_due()
        settled = await self.settle()

        return DispatchCycleResult(fanned_out=fanned_out, attempted=attempted, settled=settled)

    async def run_forever(
        self,
        poll_interval: float | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """
        Poll until cancelled or until `stop_event` is set.

        A failing cycle is logged and the loop carries on with the next one.
        """
        interval = poll_interval if poll_interval is not None else settings.webhook_poll_interval_seconds
        stop_event = stop_event or asyncio.Event()

        logger.info(
            "dispatcher_started",
            worker_id=self.worker_id,
            poll_interval=interval,
            batch_size=self._batch_size,
        )

        while not stop_event.is_set():
            try:
                result = await self.run_once()
                if result.fanned_out or result.attempted or result.settled:
                    logger.info(
                        "dispatch_cycle_completed",
                        fanned_out=result.fanned_out,
                        attempted=result.attempted,
                        settled=result.settled,
                    )
            except asyncio.CancelledError:
                logger.info("dispatcher_stopped", worker_id=self.worker_id)
                raise
            except Exception:
                logger.exception("dispatch_cycle_failed", worker_id=self.worker_id)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info("dispatcher_stopped", worker_id=self.worker_id)

    # =========================================================================
    # Fan-out
    # =========================================================================

    async def fan_out(self) -> int:
        """
        Create per-endpoint deliveries for outbox events not yet fanned out.

        Events leave this queue once their deliveries exist, so events
        still waiting on retries never hold back newer ones.

        Returns:
            Number of outbox events examined
        """
        async with self._uow() as uow:
            events = await uow.outbox.list_pending(self._batch_size)

        for event in events:
            await self._fan_out_event(event)

        return len(events)

    async def _fan_out_event(self, event: OutboxEvent) -> None:
        async with self._uow() as uow:
            endpoints = [
                endpoint
                for endpoint in await uow.endpoints.list_active(event.workspace_id)
                if endpoint.matches(event.event_type)
            ]

        for endpoint in endpoints:
            delivery = WebhookDelivery(
                workspace_id=event.workspace_id,
                endpoint_id=endpoint.id,
                event_type=event.event_type,
                payload=event.payload,
                outbox_event_id=event.id,
                fanout_key=build_fanout_key(event.id, endpoint.id),
            )
            try:
                async with self._uow() as uow:
                    await uow.deliveries.create(delivery)
            except DuplicateKeyError:
                # Already fanned out by an earlier cycle or another worker
                continue

            logger.debug(
                "delivery_created",
                delivery_id=str(delivery.id),
                outbox_event_id=str(event.id),
                endpoint_id=str(endpoint.id),
            )

        async with self._uow() as uow:
            deliveries = await uow.deliveries.list_for_outbox_event(event.id)
            await uow.outbox.mark_fanned_out(event.id, self._clock())
            unmatched = not deliveries and await uow.outbox.mark_failed(event.id)

        if unmatched:
            record_outbox_event("failed")
            logger.info(
                "outbox_event_unmatched",
                outbox_event_id=str(event.id),
                event_type=event.event_type,
                workspace_id=event.workspace_id,
            )

    # =========================================================================
    # Settlement
    # =========================================================================

    async def settle(self) -> int:
        """
        Mark fanned-out outbox events processed once none of their
        deliveries is pending any more.

        Returns:
            Number of outbox events settled
        """
        async with self._uow() as uow:
            events = await uow.outbox.list_settleable(self._batch_size)
            settled = [event for event in events if await uow.outbox.mark_processed(event.id)]

        for event in settled:
            record_outbox_event("processed")
            logger.info(
                "outbox_event_processed",
                outbox_event_id=str(event.id),
                event_type=event.event_type,
            )

        return len(settled)

    # =========================================================================
    # Delivery
    # =========================================================================

    async def deliver_due(self) -> int:
        """
        Lease and attempt every due delivery, up to the batch size.

        Returns:
            Number of deliveries this worker attempted
        """
        now = self._clock()

        async with self._uow() as uow:
            due = await uow.deliveries.list_due(now, self._batch_size)

        record_due_deliveries(len(due))

        claimed = [delivery.id for delivery in due if await self._claim(delivery.id, now)]
        if not claimed:
            return 0

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def attempt(delivery_id: UUID) -> None:
            async with semaphore:
                await self._attempt(delivery_id)

        results = await asyncio.gather(
            *(attempt(delivery_id) for delivery_id in claimed),
            return_exceptions=True,
        )

        for delivery_id, result in zip(claimed, results):
            # The lease lapses on its own, so a crashed attempt is retried later
            if isinstance(result, Exception):
                logger.error(
                    "delivery_attempt_crashed",
                    delivery_id=str(delivery_id),
                    error=str(result),
                    exc_info=result,
                )

        return len(claimed)

    async def deliver_single(self, delivery_id: UUID) -> bool:
        """
        Attempt one pending delivery immediately, ignoring its retry time.

        Returns:
            False if the delivery is not pending or is leased by another worker
        """
        if not await self._claim(delivery_id, self._clock()):
            return False

        await self._attempt(delivery_id)
        return True

    async def _claim(self, delivery_id: UUID, now: datetime) -> bool:
        async with self._uow() as uow:
            return await uow.deliveries.claim(
                delivery_id,
                self.worker_id,
                now,
                now + self._lease,
            )

    async def _attempt(self, delivery_id: UUID) -> None:
        async with self._uow() as uow:
            delivery = await uow.deliveries.get_by_id(delivery_id)
            if delivery is None or delivery.status != WebhookDeliveryStatus.PENDING:
                return
            endpoint = await uow.endpoints.get_by_id(delivery.endpoint_id)

        log = logger.bind(
            delivery_id=str(delivery.id),
            endpoint_id=str(delivery.endpoint_id),
            event_type=delivery.event_type,
        )

        if endpoint is None or not endpoint.is_active:
            reason = "Endpoint not found" if endpoint is None else "Endpoint is disabled"
            async with self._uow() as uow:
                written = await uow.deliveries.mark_failed(
                    delivery.id, self.worker_id, {"error": reason}
                )

            if not written:
                log.warning("delivery_lease_lost", worker_id=self.worker_id)
                return

            record_webhook_skipped()
            log.warning("delivery_skipped", reason=reason)
            return

        try:
            result = await self._send(delivery, endpoint)
        except Exception as e:
            log.warning("delivery_request_failed", error=str(e), exc_info=True)
            result = DeliveryResult(
                status_code=None,
                duration_ms=0,
                error=f"{e.__class__.__name__}: {e}",
            )

        await self._record_outcome(delivery, endpoint, result, log)

    async def _send(self, delivery: WebhookDelivery, endpoint: WebhookEndpoint) -> DeliveryResult:
        now = self._clock()
        body = self._encode(self._build_envelope(delivery, now))
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: sign(body, endpoint.secret, self._unix_seconds(now)),
            EVENT_ID_HEADER: str(delivery.envelope_id),
            # Header values must be ASCII; the body carries the type verbatim
            EVENT_TYPE_HEADER: quote(delivery.event_type, safe=""),
            DELIVERY_ID_HEADER: str(delivery.id),
        }

        return await self._client.post(endpoint.url, body, headers)

    async def _record_outcome(
        self,
        delivery: WebhookDelivery,
        endpoint: WebhookEndpoint,
        result: DeliveryResult,
        log,
    ) -> None:
        now = self._clock()
        attempts = delivery.attempts + 1
        response: dict[str, Any] = {
            "statusCode": result.status_code,
            "durationMs": result.duration_ms,
        }

        if result.success:
            async with self._uow() as uow:
                written = await uow.deliveries.mark_delivered(
                    delivery.id, self.worker_id, attempts, response, now
                )
                if written:
                    await uow.endpoints.record_success(endpoint.id, result.status_code, now)

            if not written:
                log.warning("delivery_lease_lost", worker_id=self.worker_id, attempts=attempts)
                return

            record_webhook_success()
            log.info(
                "delivery_succeeded",
                attempts=attempts,
                status_code=result.status_code,
                duration_ms=result.duration_ms,
            )
            return

        error = result.failure_reason[:LAST_ERROR_MAX_LENGTH]
        response["error"] = error

        exhausted = is_exhausted(attempts)
        retry_at = None if exhausted else next_retry_at(attempts, now)

        async with self._uow() as uow:
            if exhausted:
                written = await uow.deliveries.mark_dead_letter(
                    delivery.id, self.worker_id, attempts, response, now
                )
            else:
                written = await uow.deliveries.mark_retry(
                    delivery.id, self.worker_id, attempts, response, retry_at, now
                )

            if written:
                await uow.endpoints.record_failure(endpoint.id, error, now)

            if written and exhausted:
                await uow.dead_letters.save(
                    DeadLetterEvent(
                        workspace_id=delivery.workspace_id,
                        original_event_id=delivery.id,
                        outbox_event_id=delivery.outbox_event_id,
                        endpoint_id=delivery.endpoint_id,
                        event_type=delivery.event_type,
                        payload=delivery.payload,
                        failure_reason=error,
                        attempts=attempts,
                        last_attempt_at=now,
                    )
                )

        if not written:
            log.warning("delivery_lease_lost", worker_id=self.worker_id, attempts=attempts)
        elif exhausted:
            record_webhook_dead_letter()
            log.warning("delivery_dead_lettered", attempts=attempts, error=error)
        else:
            record_webhook_retry()
            log.info(
                "delivery_retry_scheduled",
                attempts=attempts,
                error=error,
                next_retry_at=retry_at.isoformat(),
            )

    # =========================================================================
    # Envelope
    # =========================================================================

    def _build_envelope(self, delivery: WebhookDelivery, now: datetime) -> dict[str, Any]:
        return {
            "id": str(delivery.envelope_id),
            "type": delivery.event_type,
            "timestamp": now.isoformat(timespec="milliseconds") + "Z",
            "workspaceId": delivery.workspace_id,
            "apiVersion": self._api_version,
            "data": delivery.payload,
        }

    @staticmethod
    def _encode(envelope: dict[str, Any]) -> bytes:
        return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    @staticmethod
    def _unix_seconds(now: datetime) -> int:
        return int(now.replace(tzinfo=timezone.utc).timestamp())
