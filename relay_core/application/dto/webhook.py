"""Data transfer objects for webhook endpoint and delivery operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Render a naive UTC timestamp as ISO-8601 with a `Z` suffix."""
    if value is None:
        return None
    return value.isoformat() + "Z"


@dataclass(frozen=True)
class WebhookEndpointDTO:
    """Endpoint as shown to operators; never carries the secret."""

    id: str
    workspace_id: str
    url: str
    events: List[str]
    status: str
    description: Optional[str]
    metadata: dict
    success_count: int
    failure_count: int
    last_delivery_at: Optional[str]
    last_delivery_status: Optional[int]
    last_error_at: Optional[str]
    last_error: Optional[str]
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_entity(cls, endpoint) -> "WebhookEndpointDTO":
        return cls(
            id=str(endpoint.id),
            workspace_id=endpoint.workspace_id,
            url=endpoint.url,
            events=list(endpoint.events),
            status=endpoint.status.value,
            description=endpoint.description,
            metadata=dict(endpoint.metadata),
            success_count=endpoint.success_count,
            failure_count=endpoint.failure_count,
            last_delivery_at=isoformat(endpoint.last_delivery_at),
            last_delivery_status=endpoint.last_delivery_status,
            last_error_at=isoformat(endpoint.last_error_at),
            last_error=endpoint.last_error,
            version=endpoint.version,
            created_at=isoformat(endpoint.created_at),
            updated_at=isoformat(endpoint.updated_at),
        )


@dataclass(frozen=True)
class WebhookEndpointSecretDTO:
    """Endpoint returned from create and rotate, the only views with the secret."""

    endpoint: WebhookEndpointDTO
    secret: str


@dataclass(frozen=True)
class CreateWebhookEndpointRequest:
    """Input for registering an endpoint."""

    workspace_id: str
    url: str
    events: List[str]
    description: Optional[str] = None
    metadata: Optional[dict] = None


@dataclass(frozen=True)
class WebhookDeliveryDTO:
    """A delivery record in the recent events listing."""

    id: str
    endpoint_id: str
    outbox_event_id: Optional[str]
    event_type: str
    status: str
    attempts: int
    next_retry_at: Optional[str]
    last_attempt_at: Optional[str]
    delivered_at: Optional[str]
    response: Optional[dict[str, Any]]
    created_at: str

    @classmethod
    def from_entity(cls, delivery) -> "WebhookDeliveryDTO":
        return cls(
            id=str(delivery.id),
            endpoint_id=str(delivery.endpoint_id),
            outbox_event_id=str(delivery.outbox_event_id) if delivery.outbox_event_id else None,
            event_type=delivery.event_type,
            status=delivery.status.value,
            attempts=delivery.attempts,
            next_retry_at=isoformat(delivery.next_retry_at),
            last_attempt_at=isoformat(delivery.last_attempt_at),
            delivered_at=isoformat(delivery.delivered_at),
            response=delivery.response,
            created_at=isoformat(delivery.created_at),
        )


@dataclass(frozen=True)
class DeadLetterDTO:
    """A dead letter entry together with the URL of its endpoint."""

    id: str
    original_event_id: str
    outbox_event_id: Optional[str]
    endpoint_id: str
    endpoint_url: Optional[str]
    event_type: str
    payload: dict[str, Any]
    failure_reason: str
    attempts: int
    last_attempt_at: str
    created_at: str

    @classmethod
    def from_entity(cls, event, endpoint_url: Optional[str] = None) -> "DeadLetterDTO":
        return cls(
            id=str(event.id),
            original_event_id=str(event.original_event_id),
            outbox_event_id=str(event.outbox_event_id) if event.outbox_event_id else None,
            endpoint_id=str(event.endpoint_id),
            endpoint_url=endpoint_url,
            event_type=event.event_type,
            payload=event.payload,
            failure_reason=event.failure_reason,
            attempts=event.attempts,
            last_attempt_at=isoformat(event.last_attempt_at),
            created_at=isoformat(event.created_at),
        )
