"""Middleware for request processing."""

from .error_handler import error_handler_middleware, error_response
from .request_context import RequestContextMiddleware, get_request_id
from .logging import LoggingMiddleware
from .workspace import WorkspaceContextMiddleware, get_workspace_id
from .idempotency import IdempotencyMiddleware

__all__ = [
    "error_handler_middleware",
    "error_response",
    "RequestContextMiddleware",
    "get_request_id",
    "LoggingMiddleware",
    "WorkspaceContextMiddleware",
    "get_workspace_id",
    "IdempotencyMiddleware",
]
