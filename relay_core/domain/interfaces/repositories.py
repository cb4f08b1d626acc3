"""Repository interfaces for data persistence."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from relay_core.domain.entities import (
    CachedResponse,
    DeadLetterEvent,
    IdempotencyRecord,
    OutboxEvent,
    WebhookDelivery,
    WebhookDeliveryStatus,
    WebhookEndpoint,
)


class OutboxRepository(ABC):
    """
    Abstract repository for the transactional outbox.

    `append` must run inside the caller's unit of work so the event is
    committed (or rolled back) together with the domain change.
    """

    @abstractmethod
    async def append(self, event: OutboxEvent) -> OutboxEvent:
        """
        Record a new pending event.

        Args:
            event: The event to append

        Returns:
            The appended event
        """
        ...

    @abstractmethod
    async def get_by_id(self, event_id: UUID) -> Optional[OutboxEvent]:
        ...

    @abstractmethod
    async def list_pending(self, limit: int = 100) -> List[OutboxEvent]:
        """
        Retrieve pending events that have not been fanned out yet, oldest first.

        Args:
            limit: Maximum number of events to return
        """
        ...

    @abstractmethod
    async def mark_fanned_out(self, event_id: UUID, at: datetime) -> bool:
        """
        Record that every delivery for the event has been created.

        Returns:
            False if the event was already fanned out
        """
        ...

    @abstractmethod
    async def list_settleable(self, limit: int = 100) -> List[OutboxEvent]:
        """
        Retrieve fanned-out pending events with no pending delivery left, oldest first.
        """
        ...

    @abstractmethod
    async def mark_processed(self, event_id: UUID) -> bool:
        """
        Transition a pending event to processed.

        Returns:
            False if the event was no longer pending
        """
        ...

    @abstractmethod
    async def mark_failed(self, event_id: UUID) -> bool:
        """
        Transition a pending event to failed.

        Returns:
            False if the event was no longer pending
        """
        ...


class WebhookEndpointRepository(ABC):
    """
    Abstract repository for the webhook endpoint registry.

    Counter updates must be applied as storage-side increments so that
    concurrent dispatch workers never lose an update.
    """

    @abstractmethod
    async def save(self, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        ...

    @abstractmethod
    async def get_by_id(
        self,
        endpoint_id: UUID,
        workspace_id: str | None = None,
    ) -> Optional[WebhookEndpoint]:
        """
        Retrieve an endpoint, optionally scoped to a workspace.

        Args:
            endpoint_id: The endpoint's identifier
            workspace_id: When given, endpoints of other workspaces are invisible
        """
        ...

    @abstractmethod
    async def list_page(
        self,
        workspace_id: str,
        limit: int,
        cursor: UUID | None = None,
    ) -> Tuple[List[WebhookEndpoint], bool]:
        """
        Retrieve a page of endpoints, newest first.

        Returns:
            The page and whether more rows follow it
        """
        ...

    @abstractmethod
    async def list_by_workspace(self, workspace_id: str) -> List[WebhookEndpoint]:
        ...

    @abstractmethod
    async def list_active(self, workspace_id: str) -> List[WebhookEndpoint]:
        ...

    @abstractmethod
    async def update(
        self,
        workspace_id: str,
        endpoint_id: UUID,
        changes: dict,
    ) -> Optional[WebhookEndpoint]:
        """
        Apply column changes and increment the version.

        Returns:
            The updated endpoint, or None if it does not exist
        """
        ...

    @abstractmethod
    async def delete(self, workspace_id: str, endpoint_id: UUID) -> bool:
        ...

    @abstractmethod
    async def record_success(
        self,
        endpoint_id: UUID,
        status_code: int,
        at: datetime,
    ) -> None:
        ...

    @abstractmethod
    async def record_failure(
        self,
        endpoint_id: UUID,
        error: str,
        at: datetime,
    ) -> None:
        ...


class WebhookDeliveryRepository(ABC):
    """Abstract repository for per-endpoint delivery records."""

    @abstractmethod
    async def create(self, delivery: WebhookDelivery) -> WebhookDelivery:
        """
        Persist a new delivery.

        Raises:
            DuplicateKeyError: If the fanout key already exists
        """
        ...

    @abstractmethod
    async def get_by_id(
        self,
        delivery_id: UUID,
        workspace_id: str | None = None,
    ) -> Optional[WebhookDelivery]:
        ...

    @abstractmethod
    async def list_for_outbox_event(self, outbox_event_id: UUID) -> List[WebhookDelivery]:
        ...

    @abstractmethod
    async def list_due(self, now: datetime, limit: int = 50) -> List[WebhookDelivery]:
        """
        Retrieve pending deliveries whose retry time has come and whose
        lease is free or expired, oldest first.
        """
        ...

    @abstractmethod
    async def claim(
        self,
        delivery_id: UUID,
        worker_id: str,
        now: datetime,
        lease_until: datetime,
    ) -> bool:
        """
        Atomically take the lease on a due delivery.

        Returns:
            True if this worker now holds the lease
        """
        ...

    @abstractmethod
    async def mark_delivered(
        self,
        delivery_id: UUID,
        worker_id: str,
        attempts: int,
        response: dict,
        at: datetime,
    ) -> bool:
        """
        Record a successful attempt and release the lease.

        Outcome writes only apply while `worker_id` still holds the lease on
        a pending delivery.

        Returns:
            False if the lease was lost and nothing was written
        """
        ...

    @abstractmethod
    async def mark_retry(
        self,
        delivery_id: UUID,
        worker_id: str,
        attempts: int,
        response: dict,
        next_retry_at: datetime,
        at: datetime,
    ) -> bool:
        ...

    @abstractmethod
    async def mark_dead_letter(
        self,
        delivery_id: UUID,
        worker_id: str,
        attempts: int,
        response: dict,
        at: datetime,
    ) -> bool:
        ...

    @abstractmethod
    async def mark_failed(self, delivery_id: UUID, worker_id: str, response: dict) -> bool:
        ...

    @abstractmethod
    async def list_recent(
        self,
        workspace_id: str,
        limit: int,
        cursor: UUID | None = None,
        endpoint_id: UUID | None = None,
        status: WebhookDeliveryStatus | None = None,
    ) -> Tuple[List[WebhookDelivery], bool]:
        ...

    @abstractmethod
    async def count_by_status(
        self,
        workspace_id: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, int]:
        ...

    @abstractmethod
    async def average_attempts(
        self,
        workspace_id: str,
        status: WebhookDeliveryStatus,
        start: datetime,
        end: datetime,
    ) -> float | None:
        ...

    @abstractmethod
    async def count_by_event_type(
        self,
        workspace_id: str,
        start: datetime,
        end: datetime,
    ) -> List[Tuple[str, str, int]]:
        """
        Returns:
            (event_type, status, count) rows
        """
        ...

    @abstractmethod
    async def count_pending_by_endpoint(self, workspace_id: str) -> dict[UUID, int]:
        ...


class DeadLetterRepository(ABC):
    """Abstract repository for the dead letter store."""

    @abstractmethod
    async def save(self, event: DeadLetterEvent) -> DeadLetterEvent:
        ...

    @abstractmethod
    async def get_by_id(
        self,
        dead_letter_id: UUID,
        workspace_id: str,
    ) -> Optional[DeadLetterEvent]:
        ...

    @abstractmethod
    async def list_page(
        self,
        workspace_id: str,
        limit: int,
        cursor: UUID | None = None,
        endpoint_id: UUID | None = None,
    ) -> Tuple[List[DeadLetterEvent], bool]:
        ...

    @abstractmethod
    async def delete(self, dead_letter_id: UUID) -> bool:
        ...


class IdempotencyRepository(ABC):
    """
    Abstract repository for idempotency claims.

    Implementations must enforce uniqueness of `key` atomically: creating
    an existing key fails instead of overwriting it.
    """

    @abstractmethod
    async def create(self, record: IdempotencyRecord) -> IdempotencyRecord:
        """
        Insert a claim.

        Raises:
            DuplicateKeyError: If the key is already claimed
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[IdempotencyRecord]:
        ...

    @abstractmethod
    async def save_response(self, key: str, response: CachedResponse) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """
        Remove claims whose advisory expiry has passed.

        Returns:
            Number of removed records
        """
        ...


class UnitOfWork(ABC):
    """
    One transaction spanning the delivery repositories.

    Used as an async context manager: the transaction commits when the
    block exits normally and rolls back when it raises.
    """

    outbox: OutboxRepository
    endpoints: WebhookEndpointRepository
    deliveries: WebhookDeliveryRepository
    dead_letters: DeadLetterRepository
    idempotency: IdempotencyRepository

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork":
        ...

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        ...
