"""Webhook delivery monitoring and dead letter API."""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from relay_core.application.services import DeadLetterService, MonitoringService
from relay_core.core.dependencies import get_dead_letter_service, get_monitoring_service
from relay_core.domain.entities import WebhookDeliveryStatus
from relay_core.presentation.middleware import get_workspace_id
from relay_core.presentation.schemas import (
    DeadLetterEventListSchema,
    DeadLetterEventSchema,
    DeadLetterRetrySchema,
    DeliveryStatsSchema,
    EndpointHealthSchema,
    ErrorResponseSchema,
    EventTypeStatsSchema,
    WebhookEventListSchema,
    WebhookEventSchema,
)

webhook_monitoring_router = APIRouter(
    prefix="/webhook-monitoring",
    tags=["webhook-monitoring"],
    responses={
        401: {"model": ErrorResponseSchema, "description": "Workspace context missing"},
    },
)

WorkspaceId = Annotated[str, Depends(get_workspace_id)]
Monitoring = Annotated[MonitoringService, Depends(get_monitoring_service)]
StartDate = Annotated[Optional[datetime], Query(alias="startDate", description="ISO 8601")]
EndDate = Annotated[Optional[datetime], Query(alias="endDate", description="ISO 8601")]
Limit = Annotated[int, Query(ge=1, le=100)]
Cursor = Annotated[Optional[UUID], Query(description="Id of the last item of the previous page")]
EndpointFilter = Annotated[Optional[UUID], Query(alias="endpointId")]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; normalise aware query values to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@webhook_monitoring_router.get(
    "/stats",
    response_model=DeliveryStatsSchema,
    summary="Delivery Statistics",
    description="""
    Delivery totals, success rate and average attempts for the workspace.

    Defaults to the last 24 hours when no dates are given.
    """,
)
async def get_stats(
    workspace_id: WorkspaceId,
    service: Monitoring,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> DeliveryStatsSchema:
    stats = await service.get_stats(workspace_id, _as_utc(start_date), _as_utc(end_date))
    return DeliveryStatsSchema(**asdict(stats))


@webhook_monitoring_router.get(
    "/endpoints/health",
    response_model=List[EndpointHealthSchema],
    summary="Endpoint Health",
    description="""
    Health of every endpoint in the workspace.

    - healthy: delivery rate >= 95%
    - degraded: delivery rate >= 80%, or an error in the last hour
    - unhealthy: delivery rate < 80%, or disabled
    """,
)
async def get_endpoint_health(
    workspace_id: WorkspaceId,
    service: Monitoring,
) -> List[EndpointHealthSchema]:
    report = await service.get_endpoint_health(workspace_id)
    return [EndpointHealthSchema(**asdict(item)) for item in report]


@webhook_monitoring_router.get(
    "/events",
    response_model=WebhookEventListSchema,
    summary="Recent Webhook Events",
    description="Recent deliveries, newest first, filterable by endpoint and status.",
)
async def get_recent_events(
    workspace_id: WorkspaceId,
    service: Monitoring,
    endpoint_id: EndpointFilter = None,
    status: Annotated[Optional[WebhookDeliveryStatus], Query()] = None,
    limit: Limit = 20,
    cursor: Cursor = None,
) -> WebhookEventListSchema:
    page = await service.get_recent_events(workspace_id, limit, cursor, endpoint_id, status)

    return WebhookEventListSchema(
        data=[WebhookEventSchema(**asdict(dto)) for dto in page.data],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@webhook_monitoring_router.get(
    "/dead-letter",
    response_model=DeadLetterEventListSchema,
    summary="Dead Letter Events",
    description="Deliveries that exhausted every retry. They can be re-queued with retry.",
)
async def get_dead_letter_events(
    workspace_id: WorkspaceId,
    service: Annotated[DeadLetterService, Depends(get_dead_letter_service)],
    endpoint_id: EndpointFilter = None,
    limit: Limit = 20,
    cursor: Cursor = None,
) -> DeadLetterEventListSchema:
    page = await service.list_dead_letters(workspace_id, limit, cursor, endpoint_id)

    return DeadLetterEventListSchema(
        data=[DeadLetterEventSchema(**asdict(dto)) for dto in page.data],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@webhook_monitoring_router.post(
    "/dead-letter/{dead_letter_id}/retry",
    response_model=DeadLetterRetrySchema,
    summary="Retry Dead Letter Event",
    description="""
    Re-queue a dead letter event as a new pending delivery and remove it
    from the dead letter store.
    """,
    responses={404: {"model": ErrorResponseSchema, "description": "Dead letter event not found"}},
)
async def retry_dead_letter_event(
    dead_letter_id: Annotated[UUID, Path(description="UUID of the dead letter event")],
    workspace_id: WorkspaceId,
    service: Annotated[DeadLetterService, Depends(get_dead_letter_service)],
) -> DeadLetterRetrySchema:
    delivery_id = await service.retry(workspace_id, dead_letter_id)
    return DeadLetterRetrySchema(webhook_event_id=delivery_id)


@webhook_monitoring_router.get(
    "/event-types",
    response_model=List[EventTypeStatsSchema],
    summary="Event Type Breakdown",
    description="Delivery volume and success rate per event type. Defaults to the last 7 days.",
)
async def get_event_type_breakdown(
    workspace_id: WorkspaceId,
    service: Monitoring,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> List[EventTypeStatsSchema]:
    breakdown = await service.get_event_type_breakdown(
        workspace_id, _as_utc(start_date), _as_utc(end_date)
    )
    return [EventTypeStatsSchema(**asdict(item)) for item in breakdown]
