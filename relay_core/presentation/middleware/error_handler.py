"""Error handling middleware and exception handlers."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from relay_core.domain.exceptions import (
    DomainException,
    DeadLetterEventNotFoundException,
    IdempotencyKeyConflictException,
    InvalidIdempotencyKeyException,
    InvalidWebhookEndpointException,
    RequestInProgressException,
    WebhookEndpointNotFoundException,
    WorkspaceRequiredException,
)
from .request_context import get_request_id

logger = structlog.get_logger(__name__)

EXCEPTION_STATUS_CODES: dict[type[DomainException], int] = {
    InvalidIdempotencyKeyException: 400,
    InvalidWebhookEndpointException: 400,
    WorkspaceRequiredException: 401,
    WebhookEndpointNotFoundException: 404,
    DeadLetterEventNotFoundException: 404,
    RequestInProgressException: 409,
    IdempotencyKeyConflictException: 409,
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Build the standard error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": code,
            "message": message,
            "request_id": get_request_id(),
        },
    )


def domain_error_response(exc: DomainException) -> JSONResponse:
    """Render a domain exception with its mapped HTTP status (400 by default)."""
    return error_response(
        EXCEPTION_STATUS_CODES.get(type(exc), 400),
        exc.code,
        exc.message,
    )


def error_handler_middleware(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI app.

    Maps domain exceptions to appropriate HTTP responses.
    """

    @app.exception_handler(WebhookEndpointNotFoundException)
    @app.exception_handler(DeadLetterEventNotFoundException)
    async def not_found_handler(
        request: Request,
        exc: DomainException,
    ) -> JSONResponse:
        return domain_error_response(exc)

    @app.exception_handler(WorkspaceRequiredException)
    async def workspace_required_handler(
        request: Request,
        exc: WorkspaceRequiredException,
    ) -> JSONResponse:
        """Handle requests that reached a tenant route without a workspace."""
        logger.warning(
            "workspace_required",
            request_id=get_request_id(),
            path=request.url.path,
        )
        return domain_error_response(exc)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request,
        exc: DomainException,
    ) -> JSONResponse:
        """Handle generic domain exceptions."""
        logger.warning(
            "domain_exception",
            request_id=get_request_id(),
            code=exc.code,
            message=exc.message,
        )
        return domain_error_response(exc)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unhandled_exception",
            request_id=get_request_id(),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred.")
