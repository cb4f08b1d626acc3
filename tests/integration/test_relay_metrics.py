"""
Integration tests for Prometheus metrics.

These tests verify:
1. The /metrics endpoint is exposed in Prometheus text format
2. Delivery, outbox and idempotency metrics are registered
3. HTTP requests and dispatcher outcomes move the counters
"""

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY


def sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsEndpoint:
    """Tests for GET /metrics."""

    @pytest.mark.asyncio
    async def test_prometheus_format(self, client: AsyncClient):
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "# HELP" in response.text
        assert "# TYPE" in response.text

    @pytest.mark.asyncio
    async def test_relay_metrics_registered(self, client: AsyncClient):
        content = (await client.get("/metrics")).text

        for name in (
            "relay_webhook_delivery_total",
            "relay_webhook_retry_total",
            "relay_webhook_dead_letter_total",
            "relay_webhook_latency_seconds",
            "relay_outbox_events_total",
            "relay_webhook_due_deliveries",
            "relay_idempotency_requests_total",
            "relay_http_requests_total",
        ):
            assert name in content


class TestRequestMetrics:
    """Tests for counters driven by API traffic."""

    @pytest.mark.asyncio
    async def test_http_requests_use_route_template(self, client: AsyncClient, ws1_headers: dict):
        labels = {"method": "GET", "endpoint": "/v1/webhook-endpoints/{endpoint_id}", "status": "404"}
        before = sample("relay_http_requests_total", labels)

        await client.get(
            "/v1/webhook-endpoints/00000000-0000-0000-0000-000000000000",
            headers=ws1_headers,
        )

        assert sample("relay_http_requests_total", labels) == before + 1

    @pytest.mark.asyncio
    async def test_idempotency_outcomes(self, client: AsyncClient, ws1_headers: dict):
        headers = {**ws1_headers, "X-Idempotency-Key": "metrics-key"}
        body = {"url": "https://receiver.example.com/hooks", "events": ["*"]}
        claimed = sample("relay_idempotency_requests_total", {"outcome": "claimed"})
        replayed = sample("relay_idempotency_requests_total", {"outcome": "replayed"})

        await client.post("/v1/webhook-endpoints", json=body, headers=headers)
        await client.post("/v1/webhook-endpoints", json=body, headers=headers)

        assert sample("relay_idempotency_requests_total", {"outcome": "claimed"}) == claimed + 1
        assert sample("relay_idempotency_requests_total", {"outcome": "replayed"}) == replayed + 1


class TestDeliveryMetrics:
    """Tests for counters driven by the dispatcher."""

    @pytest.mark.asyncio
    async def test_delivery_and_outbox_counters(
        self,
        dispatcher,
        webhook_client,
        clock,
        make_endpoint,
        publish_event,
    ):
        webhook_client.script = [500, 200]
        delivered = sample("relay_webhook_delivery_total", {"outcome": "delivered"})
        retries = sample("relay_webhook_retry_total")
        processed = sample("relay_outbox_events_total", {"outcome": "processed"})

        await make_endpoint()
        await publish_event()

        await dispatcher.run_once()
        clock.advance(5)
        await dispatcher.run_once()
        await dispatcher.run_once()

        assert sample("relay_webhook_retry_total") == retries + 1
        assert sample("relay_webhook_delivery_total", {"outcome": "delivered"}) == delivered + 1
        assert sample("relay_outbox_events_total", {"outcome": "processed"}) == processed + 1
