"""
Relay Core - Main Application Entry Point

Reliable webhook delivery and request idempotency for a multi-tenant
billing platform: a transactional outbox, signed callbacks with retries
and dead-lettering, and create-first idempotency for mutating requests.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from relay_core import __version__
from relay_core.application.services import DeliveryDispatcher
from relay_core.core.config import settings
from relay_core.core.logging import setup_logging
from relay_core.core.metrics import get_metrics, get_metrics_content_type
from relay_core.infrastructure.clients import HttpWebhookClient
from relay_core.infrastructure.database import db_manager
from relay_core.infrastructure.repositories import unit_of_work_factory
from relay_core.presentation.api import api_router
from relay_core.presentation.middleware import (
    IdempotencyMiddleware,
    LoggingMiddleware,
    RequestContextMiddleware,
    WorkspaceContextMiddleware,
    error_handler_middleware,
)
from relay_core.workers import DeliveryWorker


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Set up logging
    - Initialize the database and create missing tables
    - Run the delivery worker when enabled
    """
    setup_logging()
    db_manager.init()
    await db_manager.create_all()

    logger = structlog.get_logger(__name__)

    worker = None
    if settings.webhook_dispatcher_enabled:
        uow_factory = unit_of_work_factory()
        worker = DeliveryWorker(
            dispatcher=DeliveryDispatcher(uow_factory, HttpWebhookClient()),
            uow_factory=uow_factory,
        )
        worker.start()

    logger.info(
        "application_started",
        app=settings.app_name,
        version=__version__,
        dispatcher_enabled=settings.webhook_dispatcher_enabled,
    )

    yield

    if worker is not None:
        await worker.stop()
    await db_manager.close()
    logger.info("application_stopped")


app = FastAPI(
    title="Relay Core",
    description="Webhook delivery and request idempotency service",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Last added runs first: the workspace must be resolved before the
# idempotency layer scopes keys by it.
app.add_middleware(IdempotencyMiddleware)
app.add_middleware(WorkspaceContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

error_handler_middleware(app)

app.include_router(api_router)


if settings.metrics_enabled:

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=get_metrics(),
            media_type=get_metrics_content_type(),
        )


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""

    return RedirectResponse(url="/docs")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "relay_core.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
