"""API version 1."""

from .router import v1_router

__all__ = ["v1_router"]
