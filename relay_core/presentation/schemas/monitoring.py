"""Webhook monitoring Pydantic schemas."""

from typing import Any, List, Optional

from pydantic import Field

from .base import CamelModel


class DeliveryStatsSchema(CamelModel):
    """Schema for GET /v1/webhook-monitoring/stats."""

    total_delivered: int
    total_failed: int
    total_pending: int
    total_dead_letter: int
    delivery_rate: int = Field(
        ...,
        ge=0,
        le=100,
        description="Delivered share of finished deliveries, in percent",
        examples=[98],
    )
    average_attempts: float = Field(
        ...,
        description="Mean attempts of delivered events",
        examples=[1.2],
    )
    start: str
    end: str


class EndpointHealthSchema(CamelModel):
    id: str
    url: str
    status: str
    health: str = Field(..., examples=["healthy"])
    delivery_rate: int = Field(..., ge=0, le=100)
    success_count: int
    failure_count: int
    pending_events: int
    last_delivery_at: Optional[str] = None
    last_delivery_status: Optional[int] = None
    last_error_at: Optional[str] = None
    last_error: Optional[str] = None


class WebhookEventSchema(CamelModel):
    """A delivery record in the recent events listing."""

    id: str
    endpoint_id: str
    outbox_event_id: Optional[str] = None
    event_type: str
    status: str = Field(..., examples=["delivered"])
    attempts: int
    next_retry_at: Optional[str] = None
    last_attempt_at: Optional[str] = None
    delivered_at: Optional[str] = None
    response: Optional[dict[str, Any]] = None
    created_at: str


class WebhookEventListSchema(CamelModel):
    data: List[WebhookEventSchema]
    has_more: bool
    next_cursor: Optional[str] = None


class DeadLetterEventSchema(CamelModel):
    id: str
    original_event_id: str
    outbox_event_id: Optional[str] = None
    endpoint_id: str
    endpoint_url: Optional[str] = None
    event_type: str
    payload: dict[str, Any]
    failure_reason: str
    attempts: int
    last_attempt_at: str
    created_at: str


class DeadLetterEventListSchema(CamelModel):
    data: List[DeadLetterEventSchema]
    has_more: bool
    next_cursor: Optional[str] = None


class DeadLetterRetrySchema(CamelModel):
    webhook_event_id: str = Field(..., description="Id of the newly queued delivery")


class EventTypeStatsSchema(CamelModel):
    event_type: str = Field(..., examples=["subscription.created"])
    count: int
    delivery_rate: int = Field(..., ge=0, le=100)
