"""Workspace context exceptions."""

from .base import DomainException


class WorkspaceRequiredException(DomainException):
    """Raised when a workspace-scoped operation has no workspace context."""

    def __init__(self):
        super().__init__(
            message="Workspace context is required for this operation",
            code="WORKSPACE_REQUIRED",
        )
