"""Webhook endpoint service - manages the per-workspace endpoint registry."""

from typing import Any, Optional
from urllib.parse import urlparse
from uuid import UUID

import structlog

from relay_core.application.dto import (
    CreateWebhookEndpointRequest,
    Page,
    WebhookEndpointDTO,
    WebhookEndpointSecretDTO,
)
from relay_core.domain.entities import WebhookEndpoint, WebhookEndpointStatus
from relay_core.domain.exceptions import (
    InvalidWebhookEndpointException,
    WebhookEndpointNotFoundException,
)
from relay_core.domain.interfaces import WebhookEndpointRepository
from relay_core.service.webhooks import generate_secret

logger = structlog.get_logger(__name__)


def _validate_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidWebhookEndpointException("Endpoint URL must be an absolute http(s) URL")


def _validate_events(events: list[str]) -> None:
    if not events or any(not event for event in events):
        raise InvalidWebhookEndpointException("Endpoint must subscribe to at least one event type")


class WebhookEndpointService:
    """
    Application service for the webhook endpoint registry.

    Every lookup is scoped to the caller's workspace; an endpoint of
    another workspace is reported as not found.
    """

    def __init__(self, endpoint_repository: WebhookEndpointRepository):
        self._endpoint_repo = endpoint_repository

    async def create_endpoint(
        self,
        request: CreateWebhookEndpointRequest,
    ) -> WebhookEndpointSecretDTO:
        """
        Register an endpoint with a freshly generated secret.

        Returns:
            The endpoint together with its secret, shown only this once
            (and again on rotation)

        Raises:
            InvalidWebhookEndpointException: If the URL or events are invalid
        """
        _validate_url(request.url)
        _validate_events(request.events)

        endpoint = WebhookEndpoint(
            workspace_id=request.workspace_id,
            url=request.url,
            secret=generate_secret(),
            events=list(request.events),
            description=request.description,
            metadata=dict(request.metadata or {}),
        )
        await self._endpoint_repo.save(endpoint)

        logger.info(
            "webhook_endpoint_created",
            endpoint_id=str(endpoint.id),
            workspace_id=endpoint.workspace_id,
            events=endpoint.events,
        )

        return WebhookEndpointSecretDTO(
            endpoint=WebhookEndpointDTO.from_entity(endpoint),
            secret=endpoint.secret,
        )

    async def get_endpoint(self, workspace_id: str, endpoint_id: UUID) -> WebhookEndpointDTO:
        endpoint = await self._get_or_raise(workspace_id, endpoint_id)
        return WebhookEndpointDTO.from_entity(endpoint)

    async def list_endpoints(
        self,
        workspace_id: str,
        limit: int = 20,
        cursor: Optional[UUID] = None,
    ) -> Page[WebhookEndpointDTO]:
        endpoints, has_more = await self._endpoint_repo.list_page(workspace_id, limit, cursor)
        return Page.build(
            [WebhookEndpointDTO.from_entity(endpoint) for endpoint in endpoints],
            has_more,
            lambda dto: dto.id,
        )

    async def update_endpoint(
        self,
        workspace_id: str,
        endpoint_id: UUID,
        changes: dict[str, Any],
    ) -> WebhookEndpointDTO:
        """
        Apply a partial update.

        Args:
            changes: Any of url, events, status, description, metadata

        Raises:
            WebhookEndpointNotFoundException: If the endpoint does not exist
            InvalidWebhookEndpointException: If the new URL or events are invalid
        """
        if "url" in changes:
            _validate_url(changes["url"])
        if "events" in changes:
            _validate_events(changes["events"])
        if "status" in changes:
            changes = {**changes, "status": WebhookEndpointStatus(changes["status"])}

        return await self._apply(workspace_id, endpoint_id, changes, "webhook_endpoint_updated")

    async def enable_endpoint(self, workspace_id: str, endpoint_id: UUID) -> WebhookEndpointDTO:
        return await self._apply(
            workspace_id,
            endpoint_id,
            {"status": WebhookEndpointStatus.ACTIVE},
            "webhook_endpoint_enabled",
        )

    async def disable_endpoint(self, workspace_id: str, endpoint_id: UUID) -> WebhookEndpointDTO:
        return await self._apply(
            workspace_id,
            endpoint_id,
            {"status": WebhookEndpointStatus.DISABLED},
            "webhook_endpoint_disabled",
        )

    async def rotate_secret(
        self,
        workspace_id: str,
        endpoint_id: UUID,
    ) -> WebhookEndpointSecretDTO:
        """Replace the endpoint secret; the old one stops signing immediately."""
        secret = generate_secret()
        endpoint = await self._endpoint_repo.update(workspace_id, endpoint_id, {"secret": secret})

        if endpoint is None:
            raise WebhookEndpointNotFoundException(str(endpoint_id))

        logger.info(
            "webhook_endpoint_secret_rotated",
            endpoint_id=str(endpoint_id),
            workspace_id=workspace_id,
            version=endpoint.version,
        )

        return WebhookEndpointSecretDTO(
            endpoint=WebhookEndpointDTO.from_entity(endpoint),
            secret=endpoint.secret,
        )

    async def delete_endpoint(self, workspace_id: str, endpoint_id: UUID) -> None:
        deleted = await self._endpoint_repo.delete(workspace_id, endpoint_id)

        if not deleted:
            raise WebhookEndpointNotFoundException(str(endpoint_id))

        logger.info(
            "webhook_endpoint_deleted",
            endpoint_id=str(endpoint_id),
            workspace_id=workspace_id,
        )

    async def _apply(
        self,
        workspace_id: str,
        endpoint_id: UUID,
        changes: dict[str, Any],
        log_event: str,
    ) -> WebhookEndpointDTO:
        endpoint = await self._endpoint_repo.update(workspace_id, endpoint_id, changes)

        if endpoint is None:
            logger.warning(
                "webhook_endpoint_not_found",
                endpoint_id=str(endpoint_id),
                workspace_id=workspace_id,
            )
            raise WebhookEndpointNotFoundException(str(endpoint_id))

        logger.info(
            log_event,
            endpoint_id=str(endpoint_id),
            workspace_id=workspace_id,
            fields=sorted(changes),
            version=endpoint.version,
        )

        return WebhookEndpointDTO.from_entity(endpoint)

    async def _get_or_raise(self, workspace_id: str, endpoint_id: UUID) -> WebhookEndpoint:
        endpoint = await self._endpoint_repo.get_by_id(endpoint_id, workspace_id)

        if endpoint is None:
            logger.warning(
                "webhook_endpoint_not_found",
                endpoint_id=str(endpoint_id),
                workspace_id=workspace_id,
            )
            raise WebhookEndpointNotFoundException(str(endpoint_id))

        return endpoint
