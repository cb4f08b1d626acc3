"""Webhook endpoint Pydantic schemas."""

from typing import Any, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator

from .base import CamelModel


def _check_url(value: str) -> str:
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("url must be an absolute http(s) URL")
    return value


def _check_events(value: List[str]) -> List[str]:
    events = [event.strip() for event in value]
    if any(not event for event in events):
        raise ValueError("event types cannot be empty")
    return events


class CreateWebhookEndpointSchema(CamelModel):
    """Schema for POST /v1/webhook-endpoints request body."""

    url: str = Field(
        ...,
        max_length=2048,
        description="HTTPS URL that receives signed event callbacks",
        examples=["https://example.com/hooks/relay"],
    )
    events: List[str] = Field(
        ...,
        min_length=1,
        description="Event types to subscribe to, or '*' for all",
        examples=[["subscription.created", "invoice.paid"]],
    )
    description: Optional[str] = Field(None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _check_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: List[str]) -> List[str]:
        return _check_events(v)


class UpdateWebhookEndpointSchema(CamelModel):
    """Schema for PATCH /v1/webhook-endpoints/{id}; omitted fields are unchanged."""

    url: Optional[str] = Field(None, max_length=2048)
    events: Optional[List[str]] = Field(None, min_length=1)
    status: Optional[Literal["active", "disabled"]] = None
    description: Optional[str] = Field(None, max_length=500)
    metadata: Optional[dict[str, Any]] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v) if v is not None else v

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_events(v) if v is not None else v


class WebhookEndpointSchema(CamelModel):
    """Webhook endpoint as returned by the API. The secret is never included."""

    id: str = Field(..., examples=["550e8400-e29b-41d4-a716-446655440000"])
    workspace_id: str
    url: str
    events: List[str]
    status: str = Field(..., examples=["active"])
    description: Optional[str] = None
    metadata: dict[str, Any]
    success_count: int = Field(..., ge=0)
    failure_count: int = Field(..., ge=0)
    last_delivery_at: Optional[str] = None
    last_delivery_status: Optional[int] = None
    last_error_at: Optional[str] = None
    last_error: Optional[str] = None
    version: int
    created_at: str
    updated_at: str


class WebhookEndpointWithSecretSchema(WebhookEndpointSchema):
    """Returned by create and rotate-secret only."""

    secret: str = Field(
        ...,
        description="Signing secret; store it now, it is not shown again",
        examples=["whsec_3f1c..."],
    )


class WebhookEndpointListSchema(CamelModel):
    data: List[WebhookEndpointSchema]
    has_more: bool
    next_cursor: Optional[str] = None
