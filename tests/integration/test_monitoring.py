"""
Integration tests for the monitoring views.

These tests verify:
1. Delivery statistics and their defaults on an empty workspace
2. Endpoint health classification and pending counts
3. Event type breakdown ordering
4. Cursor pagination of recent deliveries
"""

from datetime import timedelta
from uuid import UUID

import pytest

from relay_core.application.services import MonitoringService
from relay_core.domain.clock import utcnow
from relay_core.domain.entities import (
    WebhookDelivery,
    WebhookDeliveryStatus,
    WebhookEndpointStatus,
)


@pytest.fixture
def add_delivery(uow_factory):
    """Persist a delivery record in a given state."""

    async def _add_delivery(
        endpoint,
        status: WebhookDeliveryStatus = WebhookDeliveryStatus.DELIVERED,
        event_type: str = "subscription.created",
        attempts: int = 1,
        **fields,
    ) -> WebhookDelivery:
        delivery = WebhookDelivery(
            workspace_id=endpoint.workspace_id,
            endpoint_id=endpoint.id,
            event_type=event_type,
            payload={"id": "evt"},
            status=status,
            attempts=attempts,
            **fields,
        )
        async with uow_factory() as uow:
            await uow.deliveries.create(delivery)
        return delivery

    return _add_delivery


async def monitor(uow_factory, call, *args, **kwargs):
    async with uow_factory() as uow:
        service = MonitoringService(uow.deliveries, uow.endpoints)
        return await getattr(service, call)(*args, **kwargs)


# =============================================================================
# Stats Tests
# =============================================================================

class TestDeliveryStats:
    """Tests for the workspace delivery totals."""

    @pytest.mark.asyncio
    async def test_totals_rate_and_average(self, uow_factory, make_endpoint, add_delivery):
        endpoint = await make_endpoint()
        for attempts in (1, 1, 2):
            await add_delivery(endpoint, attempts=attempts)
        await add_delivery(endpoint, WebhookDeliveryStatus.FAILED, attempts=0)
        await add_delivery(endpoint, WebhookDeliveryStatus.DEAD_LETTER, attempts=5)
        await add_delivery(endpoint, WebhookDeliveryStatus.PENDING, attempts=0)

        other = await make_endpoint(workspace_id="ws2")
        await add_delivery(other, WebhookDeliveryStatus.FAILED)

        stats = await monitor(uow_factory, "get_stats", "ws1")

        assert stats.total_delivered == 3
        assert stats.total_failed == 1
        assert stats.total_dead_letter == 1
        assert stats.total_pending == 1
        # 3 delivered out of 5 finished deliveries
        assert stats.delivery_rate == 60
        assert stats.average_attempts == 1.3

    @pytest.mark.asyncio
    async def test_empty_workspace_defaults(self, uow_factory):
        stats = await monitor(uow_factory, "get_stats", "ws1")

        assert stats.total_delivered == 0
        assert stats.delivery_rate == 100
        assert stats.average_attempts == 1.0
        assert stats.start.endswith("Z")

    @pytest.mark.asyncio
    async def test_window_excludes_older_deliveries(self, uow_factory, make_endpoint, add_delivery):
        endpoint = await make_endpoint()
        await add_delivery(endpoint, created_at=utcnow() - timedelta(days=2))
        await add_delivery(endpoint, WebhookDeliveryStatus.FAILED)

        stats = await monitor(uow_factory, "get_stats", "ws1")

        assert stats.total_delivered == 0
        assert stats.total_failed == 1
        assert stats.delivery_rate == 0


# =============================================================================
# Endpoint Health Tests
# =============================================================================

class TestEndpointHealth:
    """Tests for per-endpoint health classification."""

    @pytest.mark.asyncio
    async def test_classification(self, uow_factory, make_endpoint, add_delivery):
        healthy = await make_endpoint(success_count=100, failure_count=0)
        degraded = await make_endpoint(success_count=90, failure_count=10)
        unhealthy = await make_endpoint(success_count=50, failure_count=50)
        disabled = await make_endpoint(
            status=WebhookEndpointStatus.DISABLED, success_count=100, failure_count=0
        )
        recent_error = await make_endpoint(
            success_count=99,
            failure_count=1,
            last_error_at=utcnow() - timedelta(minutes=10),
            last_error="HTTP 502",
        )
        fresh = await make_endpoint()

        await add_delivery(healthy, WebhookDeliveryStatus.PENDING, attempts=0)
        await add_delivery(healthy, WebhookDeliveryStatus.PENDING, attempts=0)
        await add_delivery(healthy, WebhookDeliveryStatus.DELIVERED)

        report = {
            UUID(item.id): item
            for item in await monitor(uow_factory, "get_endpoint_health", "ws1")
        }

        assert report[healthy.id].health == "healthy"
        assert report[healthy.id].pending_events == 2
        assert report[degraded.id].health == "degraded"
        assert report[degraded.id].delivery_rate == 90
        assert report[unhealthy.id].health == "unhealthy"
        assert report[disabled.id].health == "unhealthy"
        assert report[disabled.id].status == "disabled"
        assert report[recent_error.id].health == "degraded"
        assert report[recent_error.id].last_error == "HTTP 502"
        assert report[fresh.id].health == "healthy"
        assert report[fresh.id].delivery_rate == 100
        assert report[fresh.id].pending_events == 0

    @pytest.mark.asyncio
    async def test_old_error_does_not_degrade(self, uow_factory, make_endpoint):
        endpoint = await make_endpoint(
            success_count=99,
            failure_count=1,
            last_error_at=utcnow() - timedelta(hours=2),
        )

        [item] = await monitor(uow_factory, "get_endpoint_health", "ws1")

        assert item.id == str(endpoint.id)
        assert item.health == "healthy"


# =============================================================================
# Event Type Tests
# =============================================================================

class TestEventTypeBreakdown:
    """Tests for per event type volume."""

    @pytest.mark.asyncio
    async def test_sorted_by_volume_then_name(self, uow_factory, make_endpoint, add_delivery):
        endpoint = await make_endpoint()
        await add_delivery(endpoint, event_type="subscription.created")
        await add_delivery(endpoint, event_type="subscription.created")
        await add_delivery(endpoint, WebhookDeliveryStatus.FAILED, event_type="subscription.created")
        for _ in range(3):
            await add_delivery(endpoint, event_type="invoice.paid")
        await add_delivery(endpoint, WebhookDeliveryStatus.PENDING, event_type="customer.updated")

        breakdown = await monitor(uow_factory, "get_event_type_breakdown", "ws1")

        assert [(item.event_type, item.count, item.delivery_rate) for item in breakdown] == [
            ("invoice.paid", 3, 100),
            ("subscription.created", 3, 67),
            ("customer.updated", 1, 0),
        ]


# =============================================================================
# Recent Events Tests
# =============================================================================

class TestRecentEvents:
    """Tests for the newest-first delivery listing."""

    @pytest.mark.asyncio
    async def test_cursor_walks_every_page(self, uow_factory, make_endpoint, add_delivery):
        endpoint = await make_endpoint()
        base = utcnow()
        deliveries = [
            await add_delivery(endpoint, created_at=base - timedelta(seconds=i))
            for i in range(5)
        ]

        seen = []
        cursor = None
        pages = 0
        while True:
            page = await monitor(
                uow_factory, "get_recent_events", "ws1", limit=2, cursor=cursor
            )
            pages += 1
            seen.extend(item.id for item in page.data)
            if not page.has_more:
                assert page.next_cursor is None
                break
            cursor = UUID(page.next_cursor)

        assert pages == 3
        assert seen == [str(delivery.id) for delivery in deliveries]

    @pytest.mark.asyncio
    async def test_filters_by_status_and_endpoint(self, uow_factory, make_endpoint, add_delivery):
        first = await make_endpoint()
        second = await make_endpoint()
        failed = await add_delivery(first, WebhookDeliveryStatus.FAILED)
        await add_delivery(first, WebhookDeliveryStatus.DELIVERED)
        await add_delivery(second, WebhookDeliveryStatus.FAILED)

        page = await monitor(
            uow_factory,
            "get_recent_events",
            "ws1",
            endpoint_id=first.id,
            status=WebhookDeliveryStatus.FAILED,
        )

        assert [item.id for item in page.data] == [str(failed.id)]
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_other_workspaces_are_invisible(self, uow_factory, make_endpoint, add_delivery):
        other = await make_endpoint(workspace_id="ws2")
        await add_delivery(other)

        page = await monitor(uow_factory, "get_recent_events", "ws1")

        assert page.data == []
