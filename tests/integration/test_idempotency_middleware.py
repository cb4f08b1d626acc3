"""
Integration tests for the idempotency middleware.

These tests verify:
1. A keyed request runs once and its response is replayed afterwards
2. Concurrent duplicates are rejected while the original is in flight
3. Key validation and the requests that bypass the layer
4. Claim release on handler failure and degraded operation without a store
5. Purging of expired claims
"""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from pydantic import BaseModel
from starlette.responses import Response

from relay_core.domain.clock import utcnow
from relay_core.domain.entities import IdempotencyRecord
from relay_core.presentation.middleware import (
    IdempotencyMiddleware,
    WorkspaceContextMiddleware,
)
from relay_core.presentation.middleware.idempotency import IDEMPOTENCY_HEADER, REPLAY_HEADER
from relay_core.workers import purge_expired_idempotency_keys


EXPORT_BYTES = b"\xff\xfe\x00export"


class Charge(BaseModel):
    amount: int


class ChargesApp:
    """A tiny API whose handlers count how often they really ran."""

    def __init__(self, uow_factory):
        self.calls = 0
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()
        self.gate.set()
        self.fail_next = False

        self.app = FastAPI()
        self.app.add_middleware(IdempotencyMiddleware, uow_factory=uow_factory)
        self.app.add_middleware(WorkspaceContextMiddleware)

        @self.app.post("/charges", status_code=201)
        async def create_charge(charge: Charge):
            self.calls += 1
            self.entered.set()
            await self.gate.wait()

            if self.fail_next:
                self.fail_next = False
                raise RuntimeError("charge processor exploded")

            return {"id": f"ch_{self.calls}", "amount": charge.amount}

        @self.app.post("/checkout", status_code=201)
        async def checkout():
            self.calls += 1
            self.entered.set()
            await self.gate.wait()
            return {"id": "x"}

        @self.app.post("/exports")
        async def create_export():
            self.calls += 1
            response = Response(content=EXPORT_BYTES, media_type="application/octet-stream")
            response.set_cookie("export", "1")
            response.set_cookie("region", "eu")
            return response

        @self.app.get("/charges")
        async def list_charges():
            self.calls += 1
            return {"data": []}


def keyed(key: str, workspace_id: str = "ws1") -> dict:
    return {IDEMPOTENCY_HEADER: key, "X-Workspace-Id": workspace_id}


class BrokenUnitOfWork:
    async def __aenter__(self):
        raise OSError("database unavailable")

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


@pytest.fixture
def charges(uow_factory) -> ChargesApp:
    return ChargesApp(uow_factory)


@pytest_asyncio.fixture
async def http(charges: ChargesApp):
    transport = ASGITransport(app=charges.app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Replay Tests
# =============================================================================

class TestReplay:
    """Tests for completed keyed requests."""

    @pytest.mark.asyncio
    async def test_duplicate_gets_cached_response(self, http, charges):
        first = await http.post("/charges", json={"amount": 500}, headers=keyed("key-1"))
        second = await http.post("/charges", json={"amount": 500}, headers=keyed("key-1"))

        assert first.status_code == 201
        assert REPLAY_HEADER not in first.headers

        assert second.status_code == 201
        assert second.headers[REPLAY_HEADER] == "true"
        assert second.json() == first.json() == {"id": "ch_1", "amount": 500}
        assert charges.calls == 1

    @pytest.mark.asyncio
    async def test_replay_ignores_a_different_body(self, http, charges):
        await http.post("/charges", json={"amount": 500}, headers=keyed("key-1"))
        second = await http.post("/charges", json={"amount": 999}, headers=keyed("key-1"))

        assert second.json()["amount"] == 500
        assert charges.calls == 1

    @pytest.mark.asyncio
    async def test_error_responses_are_replayed(self, http, charges):
        first = await http.post("/charges", json={"amount": "lots"}, headers=keyed("bad"))
        second = await http.post("/charges", json={"amount": "lots"}, headers=keyed("bad"))

        assert first.status_code == 422
        assert second.status_code == 422
        assert second.headers[REPLAY_HEADER] == "true"
        assert charges.calls == 0

    @pytest.mark.asyncio
    async def test_binary_body_and_repeated_headers_survive(self, http, charges):
        first = await http.post("/exports", headers=keyed("export-1"))
        second = await http.post("/exports", headers=keyed("export-1"))

        assert len(first.headers.get_list("set-cookie")) == 2
        assert first.content == EXPORT_BYTES

        assert second.headers[REPLAY_HEADER] == "true"
        assert second.content == EXPORT_BYTES
        assert second.headers["content-type"] == "application/octet-stream"
        assert charges.calls == 1

    @pytest.mark.asyncio
    async def test_keys_are_scoped_per_workspace(self, http, charges):
        first = await http.post("/charges", json={"amount": 1}, headers=keyed("shared", "ws1"))
        second = await http.post("/charges", json={"amount": 1}, headers=keyed("shared", "ws2"))

        assert first.status_code == second.status_code == 201
        assert REPLAY_HEADER not in second.headers
        assert charges.calls == 2


# =============================================================================
# Concurrency Tests
# =============================================================================

class TestInFlight:
    """Tests for duplicates arriving before the original finished."""

    @pytest.mark.asyncio
    async def test_checkout_in_flight_then_replayed(self, http, charges):
        charges.gate.clear()

        first = asyncio.create_task(http.post("/checkout", headers=keyed("abc")))
        await charges.entered.wait()

        concurrent = await http.post("/checkout", headers=keyed("abc"))
        assert concurrent.status_code == 409
        assert concurrent.json()["error"] == "REQUEST_IN_PROGRESS"

        charges.gate.set()
        original = await first
        assert original.status_code == 201
        assert original.json() == {"id": "x"}

        third = await http.post("/checkout", headers=keyed("abc"))
        assert third.status_code == 201
        assert third.json() == {"id": "x"}
        assert third.headers[REPLAY_HEADER] == "true"
        assert charges.calls == 1

    @pytest.mark.asyncio
    async def test_simultaneous_requests_run_handler_once(self, http, charges):
        charges.gate.clear()

        async def release_later():
            await asyncio.sleep(0.2)
            charges.gate.set()

        first, second, _ = await asyncio.gather(
            http.post("/charges", json={"amount": 10}, headers=keyed("race")),
            http.post("/charges", json={"amount": 10}, headers=keyed("race")),
            release_later(),
        )

        assert sorted([first.status_code, second.status_code]) == [201, 409]
        assert charges.calls == 1


# =============================================================================
# Validation and Bypass Tests
# =============================================================================

class TestValidation:
    """Tests for key validation and unprotected requests."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["", "k" * 256])
    async def test_invalid_key_length_is_rejected(self, http, charges, key):
        response = await http.post("/charges", json={"amount": 1}, headers=keyed(key))

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_IDEMPOTENCY_KEY"
        assert charges.calls == 0

    @pytest.mark.asyncio
    async def test_longest_valid_key_is_accepted(self, http):
        response = await http.post("/charges", json={"amount": 1}, headers=keyed("k" * 255))

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_requests_without_key_are_not_deduplicated(self, http, charges):
        headers = {"X-Workspace-Id": "ws1"}
        await http.post("/charges", json={"amount": 1}, headers=headers)
        await http.post("/charges", json={"amount": 1}, headers=headers)

        assert charges.calls == 2

    @pytest.mark.asyncio
    async def test_requests_without_workspace_are_not_deduplicated(self, http, charges):
        headers = {IDEMPOTENCY_HEADER: "key-1"}
        await http.post("/charges", json={"amount": 1}, headers=headers)
        second = await http.post("/charges", json={"amount": 1}, headers=headers)

        assert REPLAY_HEADER not in second.headers
        assert charges.calls == 2

    @pytest.mark.asyncio
    async def test_safe_methods_bypass(self, http, charges):
        await http.get("/charges", headers=keyed("key-1"))
        second = await http.get("/charges", headers=keyed("key-1"))

        assert REPLAY_HEADER not in second.headers
        assert charges.calls == 2


# =============================================================================
# Failure Tests
# =============================================================================

class TestFailures:
    """Tests for handler crashes and an unavailable store."""

    @pytest.mark.asyncio
    async def test_handler_exception_releases_claim(self, http, charges):
        charges.fail_next = True

        crashed = await http.post("/charges", json={"amount": 5}, headers=keyed("retry-me"))
        retried = await http.post("/charges", json={"amount": 5}, headers=keyed("retry-me"))

        assert crashed.status_code == 500
        assert retried.status_code == 201
        assert REPLAY_HEADER not in retried.headers
        assert charges.calls == 2

    @pytest.mark.asyncio
    async def test_unavailable_store_runs_request_unprotected(self):
        charges = ChargesApp(BrokenUnitOfWork)
        transport = ASGITransport(app=charges.app)

        async with AsyncClient(transport=transport, base_url="http://test") as http:
            first = await http.post("/charges", json={"amount": 5}, headers=keyed("key-1"))
            second = await http.post("/charges", json={"amount": 5}, headers=keyed("key-1"))

        assert first.status_code == second.status_code == 201
        assert charges.calls == 2


# =============================================================================
# Cleanup Tests
# =============================================================================

class TestPurge:
    """Tests for removing expired claims."""

    @pytest.mark.asyncio
    async def test_only_expired_claims_are_removed(self, uow_factory):
        expired = IdempotencyRecord.claim("ws1", "POST", "/charges", "old")
        expired.expires_at = utcnow() - timedelta(minutes=1)
        fresh = IdempotencyRecord.claim("ws1", "POST", "/charges", "new")

        async with uow_factory() as uow:
            await uow.idempotency.create(expired)
            await uow.idempotency.create(fresh)

        assert await purge_expired_idempotency_keys(uow_factory) == 1

        async with uow_factory() as uow:
            assert await uow.idempotency.get(expired.key) is None
            assert await uow.idempotency.get(fresh.key) is not None
