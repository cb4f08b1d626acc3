"""Version 1 API router."""

from fastapi import APIRouter

from .health import health_router
from .webhook_endpoints import webhook_endpoints_router
from .webhook_monitoring import webhook_monitoring_router

v1_router = APIRouter()
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(webhook_endpoints_router)
v1_router.include_router(webhook_monitoring_router)
