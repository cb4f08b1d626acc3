"""
Fixtures for integration tests.

Provides:
- A file-backed SQLite database per test (several sessions may run concurrently)
- Unit of work factories bound to it
- A scripted fake webhook client and a controllable clock
- Test client for the FastAPI app
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, List, Mapping

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import NullPool

from relay_core.application.services import DeliveryDispatcher, OutboxService
from relay_core.domain.clock import utcnow
from relay_core.domain.entities import (
    DeliveryResult,
    OutboxEvent,
    WebhookEndpoint,
    WebhookEndpointStatus,
)
from relay_core.domain.interfaces import UnitOfWork, WebhookClient
from relay_core.infrastructure.database import DatabaseSessionManager, db_manager
from relay_core.infrastructure.repositories import unit_of_work_factory
from relay_core.main import app
from relay_core.service.webhooks import generate_secret


# =============================================================================
# Fakes
# =============================================================================

@dataclass
class SentWebhook:
    url: str
    body: bytes
    headers: dict


class FakeWebhookClient(WebhookClient):
    """
    Webhook client that records every call and answers from a script.

    Each scripted item is a status code, a full DeliveryResult, an exception
    to raise, or an async callable whose return value is used instead. Once
    the script runs out every call answers with `default_status`.
    """

    def __init__(self, script: List = None, default_status: int = 200, delay: float = 0.0):
        self.script = list(script or [])
        self.default_status = default_status
        self.delay = delay
        self.calls: List[SentWebhook] = []

    async def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> DeliveryResult:
        self.calls.append(SentWebhook(url=url, body=body, headers=dict(headers)))

        if self.delay:
            await asyncio.sleep(self.delay)

        outcome = self.script.pop(0) if self.script else self.default_status
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            outcome = await outcome()
        if isinstance(outcome, DeliveryResult):
            return outcome
        return DeliveryResult(status_code=outcome, duration_ms=12)


@dataclass
class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    now: datetime = field(default_factory=utcnow)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)

    def unix(self) -> int:
        return int(self.now.replace(tzinfo=timezone.utc).timestamp())


# =============================================================================
# Database Fixtures
# =============================================================================

def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'relay.db'}"


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[DatabaseSessionManager, None]:
    """A private database manager over a fresh SQLite file."""
    manager = DatabaseSessionManager()
    manager.init(sqlite_url(tmp_path), poolclass=NullPool)
    await manager.create_all()

    yield manager

    await manager.close()


@pytest.fixture
def uow_factory(database: DatabaseSessionManager) -> Callable[[], UnitOfWork]:
    return unit_of_work_factory(database.session)


# =============================================================================
# Delivery Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def webhook_client() -> FakeWebhookClient:
    return FakeWebhookClient()


@pytest.fixture
def dispatcher(uow_factory, webhook_client, clock) -> DeliveryDispatcher:
    return DeliveryDispatcher(
        uow_factory,
        webhook_client,
        batch_size=50,
        lease_seconds=60,
        max_concurrency=5,
        api_version="2024-01-01",
        worker_id="worker-a",
        clock=clock,
    )


@pytest.fixture
def make_endpoint(uow_factory):
    """Persist an endpoint and return it."""

    async def _make_endpoint(
        workspace_id: str = "ws1",
        events: List[str] = None,
        url: str = "https://receiver.example.com/hooks",
        status: WebhookEndpointStatus = WebhookEndpointStatus.ACTIVE,
        **fields,
    ) -> WebhookEndpoint:
        endpoint = WebhookEndpoint(
            workspace_id=workspace_id,
            url=url,
            secret=generate_secret(),
            events=events or ["*"],
            status=status,
            **fields,
        )
        async with uow_factory() as uow:
            await uow.endpoints.save(endpoint)
        return endpoint

    return _make_endpoint


@pytest.fixture
def publish_event(uow_factory):
    """Append an outbox event the way a producer would."""

    async def _publish_event(
        event_type: str = "subscription.created",
        workspace_id: str = "ws1",
        payload: dict = None,
    ) -> OutboxEvent:
        async with uow_factory() as uow:
            return await OutboxService(uow.outbox).publish(
                workspace_id=workspace_id,
                event_type=event_type,
                aggregate_type="subscription",
                aggregate_id="sub_123",
                payload=payload or {"subscriptionId": "sub_123", "plan": "pro"},
            )

    return _publish_event


# =============================================================================
# App Client Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def client(tmp_path) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client for the application.

    The app's global database manager is pointed at a fresh SQLite file;
    the lifespan (and therefore the background worker) does not run.
    """
    db_manager.init(sqlite_url(tmp_path), poolclass=NullPool)
    await db_manager.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db_manager.close()


@pytest.fixture
def app_uow_factory() -> Callable[[], UnitOfWork]:
    """Unit of work over the database used by the `client` fixture."""
    return unit_of_work_factory(db_manager.session)


@pytest.fixture
def ws1_headers() -> dict:
    return {"X-Workspace-Id": "ws1"}
