"""Unit Tests for the httpx-based webhook client."""

import httpx
import pytest

from relay_core.infrastructure.clients import HttpWebhookClient

URL = "https://receiver.example.com/hooks"
BODY = b'{"id":"evt_1"}'
HEADERS = {"Content-Type": "application/json", "X-Relay-Signature": "t=1,v1=abc"}


def client_returning(handler) -> HttpWebhookClient:
    return HttpWebhookClient(timeout=5.0, transport=httpx.MockTransport(handler))


class TestHttpWebhookClient:
    """Tests for HttpWebhookClient.post()."""

    @pytest.mark.asyncio
    async def test_sends_exact_body_and_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content
            seen["signature"] = request.headers["X-Relay-Signature"]
            seen["method"] = request.method
            return httpx.Response(200)

        result = await client_returning(handler).post(URL, BODY, HEADERS)

        assert result.success
        assert result.status_code == 200
        assert seen == {"body": BODY, "signature": "t=1,v1=abc", "method": "POST"}

    @pytest.mark.asyncio
    async def test_non_2xx_is_reported_not_raised(self):
        result = await client_returning(lambda request: httpx.Response(500, text="boom")).post(
            URL, BODY, HEADERS
        )

        assert not result.success
        assert result.status_code == 500
        assert result.failure_reason == "HTTP 500"

    @pytest.mark.asyncio
    async def test_redirect_is_not_success(self):
        result = await client_returning(
            lambda request: httpx.Response(301, headers={"Location": "https://elsewhere"})
        ).post(URL, BODY, HEADERS)

        assert not result.success

    @pytest.mark.asyncio
    async def test_connection_error_becomes_failed_result(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await client_returning(handler).post(URL, BODY, HEADERS)

        assert not result.success
        assert result.status_code is None
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_timeout_becomes_failed_result(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await client_returning(handler).post(URL, BODY, HEADERS)

        assert not result.success
        assert result.error.startswith("Request timed out")
