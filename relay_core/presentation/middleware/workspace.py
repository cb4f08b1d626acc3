"""Workspace (tenant) context resolution."""

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from relay_core.domain.exceptions import WorkspaceRequiredException

WORKSPACE_HEADER = "X-Workspace-Id"


class WorkspaceContextMiddleware(BaseHTTPMiddleware):
    """
    Copies the caller's workspace id onto `request.state.workspace_id`.

    Stands in for the upstream authentication layer, which owns the real
    tenant resolution. Requests without the header carry no workspace.
    """

    async def dispatch(self, request: Request, call_next):
        workspace_id = request.headers.get(WORKSPACE_HEADER, "").strip()
        request.state.workspace_id = workspace_id or None
        return await call_next(request)


def get_optional_workspace_id(request: Request) -> Optional[str]:
    return getattr(request.state, "workspace_id", None)


def get_workspace_id(request: Request) -> str:
    """
    FastAPI dependency returning the current workspace.

    Raises:
        WorkspaceRequiredException: If the request carries no workspace
    """
    workspace_id = get_optional_workspace_id(request)
    if not workspace_id:
        raise WorkspaceRequiredException()
    return workspace_id
