"""Monitoring service - derived read-only views over delivery state."""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import structlog

from relay_core.application.dto import (
    DeliveryStatsDTO,
    EndpointHealthDTO,
    EventTypeStatsDTO,
    Page,
    WebhookDeliveryDTO,
    isoformat,
)
from relay_core.domain.clock import utcnow
from relay_core.domain.entities import WebhookDeliveryStatus
from relay_core.domain.interfaces import WebhookDeliveryRepository, WebhookEndpointRepository
from relay_core.service.webhooks import classify_endpoint_health, delivery_rate

logger = structlog.get_logger(__name__)

DEFAULT_STATS_WINDOW = timedelta(hours=24)
DEFAULT_EVENT_TYPE_WINDOW = timedelta(days=7)


class MonitoringService:
    """Read-only aggregation of delivery statistics and endpoint health."""

    def __init__(
        self,
        delivery_repository: WebhookDeliveryRepository,
        endpoint_repository: WebhookEndpointRepository,
    ):
        self._delivery_repo = delivery_repository
        self._endpoint_repo = endpoint_repository

    async def get_stats(
        self,
        workspace_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> DeliveryStatsDTO:
        """
        Delivery totals for deliveries created within [start, end].

        The window defaults to the last 24 hours. The delivery rate counts
        delivered against every finished outcome and is 100 without data;
        average attempts covers delivered deliveries only.
        """
        end = end or utcnow()
        start = start or end - DEFAULT_STATS_WINDOW

        counts = await self._delivery_repo.count_by_status(workspace_id, start, end)
        delivered = counts.get(WebhookDeliveryStatus.DELIVERED.value, 0)
        failed = counts.get(WebhookDeliveryStatus.FAILED.value, 0)
        pending = counts.get(WebhookDeliveryStatus.PENDING.value, 0)
        dead_letter = counts.get(WebhookDeliveryStatus.DEAD_LETTER.value, 0)

        average = await self._delivery_repo.average_attempts(
            workspace_id, WebhookDeliveryStatus.DELIVERED, start, end
        )

        return DeliveryStatsDTO(
            total_delivered=delivered,
            total_failed=failed,
            total_pending=pending,
            total_dead_letter=dead_letter,
            delivery_rate=delivery_rate(delivered, delivered + failed + dead_letter),
            average_attempts=round(average, 1) if average is not None else 1.0,
            start=isoformat(start),
            end=isoformat(end),
        )

    async def get_endpoint_health(self, workspace_id: str) -> list[EndpointHealthDTO]:
        now = utcnow()
        endpoints = await self._endpoint_repo.list_by_workspace(workspace_id)
        pending = await self._delivery_repo.count_pending_by_endpoint(workspace_id)

        report = []
        for endpoint in endpoints:
            rate = delivery_rate(
                endpoint.success_count,
                endpoint.success_count + endpoint.failure_count,
            )
            health = classify_endpoint_health(
                rate,
                disabled=not endpoint.is_active,
                last_error_at=endpoint.last_error_at,
                now=now,
            )
            report.append(
                EndpointHealthDTO(
                    id=str(endpoint.id),
                    url=endpoint.url,
                    status=endpoint.status.value,
                    health=health.value,
                    delivery_rate=rate,
                    success_count=endpoint.success_count,
                    failure_count=endpoint.failure_count,
                    pending_events=pending.get(endpoint.id, 0),
                    last_delivery_at=isoformat(endpoint.last_delivery_at),
                    last_delivery_status=endpoint.last_delivery_status,
                    last_error_at=isoformat(endpoint.last_error_at),
                    last_error=endpoint.last_error,
                )
            )

        logger.debug("endpoint_health_computed", workspace_id=workspace_id, count=len(report))

        return report

    async def get_recent_events(
        self,
        workspace_id: str,
        limit: int = 20,
        cursor: Optional[UUID] = None,
        endpoint_id: Optional[UUID] = None,
        status: Optional[WebhookDeliveryStatus] = None,
    ) -> Page[WebhookDeliveryDTO]:
        deliveries, has_more = await self._delivery_repo.list_recent(
            workspace_id, limit, cursor, endpoint_id, status
        )
        return Page.build(
            [WebhookDeliveryDTO.from_entity(delivery) for delivery in deliveries],
            has_more,
            lambda dto: dto.id,
        )

    async def get_event_type_breakdown(
        self,
        workspace_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[EventTypeStatsDTO]:
        """Per event type volume and delivery rate, busiest first (default: last 7 days)."""
        end = end or utcnow()
        start = start or end - DEFAULT_EVENT_TYPE_WINDOW

        totals: dict[str, int] = {}
        delivered: dict[str, int] = {}
        for event_type, status, count in await self._delivery_repo.count_by_event_type(
            workspace_id, start, end
        ):
            totals[event_type] = totals.get(event_type, 0) + count
            if status == WebhookDeliveryStatus.DELIVERED.value:
                delivered[event_type] = delivered.get(event_type, 0) + count

        breakdown = [
            EventTypeStatsDTO(
                event_type=event_type,
                count=total,
                delivery_rate=delivery_rate(delivered.get(event_type, 0), total),
            )
            for event_type, total in totals.items()
        ]
        breakdown.sort(key=lambda item: (-item.count, item.event_type))

        return breakdown
