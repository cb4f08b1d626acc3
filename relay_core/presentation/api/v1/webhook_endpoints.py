"""Webhook endpoint registry API."""

from dataclasses import asdict
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Response

from relay_core.application.dto import CreateWebhookEndpointRequest
from relay_core.application.services import WebhookEndpointService
from relay_core.core.dependencies import get_endpoint_service
from relay_core.presentation.middleware import get_workspace_id
from relay_core.presentation.schemas import (
    CreateWebhookEndpointSchema,
    ErrorResponseSchema,
    UpdateWebhookEndpointSchema,
    WebhookEndpointListSchema,
    WebhookEndpointSchema,
    WebhookEndpointWithSecretSchema,
)

webhook_endpoints_router = APIRouter(
    prefix="/webhook-endpoints",
    tags=["webhook-endpoints"],
    responses={
        401: {"model": ErrorResponseSchema, "description": "Workspace context missing"},
    },
)

EndpointId = Annotated[UUID, Path(description="UUID of the webhook endpoint")]
WorkspaceId = Annotated[str, Depends(get_workspace_id)]
Service = Annotated[WebhookEndpointService, Depends(get_endpoint_service)]

_NOT_FOUND = {404: {"model": ErrorResponseSchema, "description": "Endpoint not found"}}


@webhook_endpoints_router.post(
    "",
    response_model=WebhookEndpointWithSecretSchema,
    status_code=201,
    summary="Create Webhook Endpoint",
    description="""
    Register a URL to receive signed event callbacks.

    The response contains the signing secret. It is only returned here
    and by rotate-secret.
    """,
    responses={400: {"model": ErrorResponseSchema, "description": "Invalid endpoint"}},
)
async def create_endpoint(
    body: CreateWebhookEndpointSchema,
    workspace_id: WorkspaceId,
    service: Service,
) -> WebhookEndpointWithSecretSchema:
    result = await service.create_endpoint(
        CreateWebhookEndpointRequest(
            workspace_id=workspace_id,
            url=body.url,
            events=body.events,
            description=body.description,
            metadata=body.metadata,
        )
    )
    return WebhookEndpointWithSecretSchema(**asdict(result.endpoint), secret=result.secret)


@webhook_endpoints_router.get(
    "",
    response_model=WebhookEndpointListSchema,
    summary="List Webhook Endpoints",
    description="List the workspace's endpoints, newest first.",
)
async def list_endpoints(
    workspace_id: WorkspaceId,
    service: Service,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    cursor: Annotated[Optional[UUID], Query(description="Id of the last item of the previous page")] = None,
) -> WebhookEndpointListSchema:
    page = await service.list_endpoints(workspace_id, limit, cursor)

    return WebhookEndpointListSchema(
        data=[WebhookEndpointSchema(**asdict(dto)) for dto in page.data],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@webhook_endpoints_router.get(
    "/{endpoint_id}",
    response_model=WebhookEndpointSchema,
    summary="Get Webhook Endpoint",
    responses=_NOT_FOUND,
)
async def get_endpoint(
    endpoint_id: EndpointId,
    workspace_id: WorkspaceId,
    service: Service,
) -> WebhookEndpointSchema:
    dto = await service.get_endpoint(workspace_id, endpoint_id)
    return WebhookEndpointSchema(**asdict(dto))


@webhook_endpoints_router.patch(
    "/{endpoint_id}",
    response_model=WebhookEndpointSchema,
    summary="Update Webhook Endpoint",
    responses=_NOT_FOUND,
)
async def update_endpoint(
    endpoint_id: EndpointId,
    body: UpdateWebhookEndpointSchema,
    workspace_id: WorkspaceId,
    service: Service,
) -> WebhookEndpointSchema:
    # Explicit nulls only clear the description
    changes = {
        name: value
        for name, value in body.model_dump(exclude_unset=True).items()
        if value is not None or name == "description"
    }
    dto = await service.update_endpoint(workspace_id, endpoint_id, changes)
    return WebhookEndpointSchema(**asdict(dto))


@webhook_endpoints_router.delete(
    "/{endpoint_id}",
    status_code=204,
    summary="Delete Webhook Endpoint",
    responses=_NOT_FOUND,
)
async def delete_endpoint(
    endpoint_id: EndpointId,
    workspace_id: WorkspaceId,
    service: Service,
) -> Response:
    await service.delete_endpoint(workspace_id, endpoint_id)
    return Response(status_code=204)


@webhook_endpoints_router.post(
    "/{endpoint_id}/rotate-secret",
    response_model=WebhookEndpointWithSecretSchema,
    summary="Rotate Signing Secret",
    description="Replace the signing secret. The previous secret stops being used immediately.",
    responses=_NOT_FOUND,
)
async def rotate_secret(
    endpoint_id: EndpointId,
    workspace_id: WorkspaceId,
    service: Service,
) -> WebhookEndpointWithSecretSchema:
    result = await service.rotate_secret(workspace_id, endpoint_id)
    return WebhookEndpointWithSecretSchema(**asdict(result.endpoint), secret=result.secret)


@webhook_endpoints_router.post(
    "/{endpoint_id}/enable",
    response_model=WebhookEndpointSchema,
    summary="Enable Webhook Endpoint",
    responses=_NOT_FOUND,
)
async def enable_endpoint(
    endpoint_id: EndpointId,
    workspace_id: WorkspaceId,
    service: Service,
) -> WebhookEndpointSchema:
    dto = await service.enable_endpoint(workspace_id, endpoint_id)
    return WebhookEndpointSchema(**asdict(dto))


@webhook_endpoints_router.post(
    "/{endpoint_id}/disable",
    response_model=WebhookEndpointSchema,
    summary="Disable Webhook Endpoint",
    description="Stop deliveries to the endpoint. Pending deliveries are marked failed when picked up.",
    responses=_NOT_FOUND,
)
async def disable_endpoint(
    endpoint_id: EndpointId,
    workspace_id: WorkspaceId,
    service: Service,
) -> WebhookEndpointSchema:
    dto = await service.disable_endpoint(workspace_id, endpoint_id)
    return WebhookEndpointSchema(**asdict(dto))
