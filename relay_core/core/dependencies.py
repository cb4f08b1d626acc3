"""Dependency injection for FastAPI."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relay_core.infrastructure.database import get_db_session
from relay_core.infrastructure.repositories import (
    PostgresDeadLetterRepository,
    PostgresWebhookDeliveryRepository,
    PostgresWebhookEndpointRepository,
)
from relay_core.application.services import (
    DeadLetterService,
    MonitoringService,
    WebhookEndpointService,
)


# Repository dependencies
async def get_endpoint_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PostgresWebhookEndpointRepository:
    """Get a WebhookEndpointRepository instance."""
    return PostgresWebhookEndpointRepository(session)


async def get_delivery_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PostgresWebhookDeliveryRepository:
    """Get a WebhookDeliveryRepository instance."""
    return PostgresWebhookDeliveryRepository(session)


async def get_dead_letter_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PostgresDeadLetterRepository:
    return PostgresDeadLetterRepository(session)


# Service dependencies
async def get_endpoint_service(
    endpoint_repo: Annotated[PostgresWebhookEndpointRepository, Depends(get_endpoint_repository)],
) -> WebhookEndpointService:
    """Get a WebhookEndpointService instance."""
    return WebhookEndpointService(endpoint_repository=endpoint_repo)


async def get_dead_letter_service(
    dead_letter_repo: Annotated[PostgresDeadLetterRepository, Depends(get_dead_letter_repository)],
    delivery_repo: Annotated[PostgresWebhookDeliveryRepository, Depends(get_delivery_repository)],
    endpoint_repo: Annotated[PostgresWebhookEndpointRepository, Depends(get_endpoint_repository)],
) -> DeadLetterService:
    """Get a DeadLetterService; its repositories share the request's session."""
    return DeadLetterService(
        dead_letter_repository=dead_letter_repo,
        delivery_repository=delivery_repo,
        endpoint_repository=endpoint_repo,
    )


async def get_monitoring_service(
    delivery_repo: Annotated[PostgresWebhookDeliveryRepository, Depends(get_delivery_repository)],
    endpoint_repo: Annotated[PostgresWebhookEndpointRepository, Depends(get_endpoint_repository)],
) -> MonitoringService:
    """Get a MonitoringService instance."""
    return MonitoringService(
        delivery_repository=delivery_repo,
        endpoint_repository=endpoint_repo,
    )
