"""Prometheus metrics for the Relay delivery core.

Delivery Metrics:
- relay_webhook_delivery_total: Delivery attempts by outcome
- relay_webhook_retry_total: Failed attempts that were rescheduled
- relay_webhook_dead_letter_total: Deliveries moved to the dead letter store
- relay_webhook_latency_seconds: Outbound callback latency
- relay_outbox_events_total: Outbox events settled by outcome
- relay_webhook_due_deliveries: Deliveries due at the last poll cycle

Request Metrics:
- relay_idempotency_requests_total: Idempotent requests by outcome
- relay_http_requests_total: HTTP requests by endpoint/status
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, Gauge, REGISTRY, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST


# =============================================================================
# Delivery Metrics
# =============================================================================

webhook_delivery_total = Counter(
    "relay_webhook_delivery_total",
    "Total number of webhook delivery attempts",
    ["outcome"],  # delivered, failed, skipped
)

webhook_retries = Counter(
    "relay_webhook_retry_total",
    "Total number of failed webhook attempts scheduled for retry",
)

webhook_dead_letters = Counter(
    "relay_webhook_dead_letter_total",
    "Total number of deliveries moved to the dead letter store",
)

webhook_latency = Histogram(
    "relay_webhook_latency_seconds",
    "Webhook delivery latency in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

outbox_events_total = Counter(
    "relay_outbox_events_total",
    "Outbox events settled by the dispatcher",
    ["outcome"],  # processed, failed
)

webhook_due_deliveries = Gauge(
    "relay_webhook_due_deliveries",
    "Number of deliveries found due at the last poll cycle",
)


# =============================================================================
# Request Metrics
# =============================================================================

idempotency_requests_total = Counter(
    "relay_idempotency_requests_total",
    "Requests carrying an idempotency key by outcome",
    ["outcome"],  # claimed, replayed, in_progress, conflict, invalid, unprotected
)

http_requests_total = Counter(
    "relay_http_requests_total",
    "Total HTTP requests by endpoint and status",
    ["method", "endpoint", "status"],
)

http_request_latency = Histogram(
    "relay_http_request_latency_seconds",
    "HTTP request latency by endpoint",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


# =============================================================================
# Helper Functions
# =============================================================================

@contextmanager
def track_webhook_latency() -> Generator[None, None, None]:
    """Context manager to track webhook latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        webhook_latency.observe(duration)


def record_webhook_success() -> None:
    """Record a successful webhook delivery."""
    webhook_delivery_total.labels(outcome="delivered").inc()


def record_webhook_retry() -> None:
    """Record a failed attempt that will be retried."""
    webhook_delivery_total.labels(outcome="failed").inc()
    webhook_retries.inc()


def record_webhook_dead_letter() -> None:
    """Record a delivery that exhausted all attempts."""
    webhook_delivery_total.labels(outcome="failed").inc()
    webhook_dead_letters.inc()


def record_webhook_skipped() -> None:
    """Record a delivery dropped because its endpoint is no longer active."""
    webhook_delivery_total.labels(outcome="skipped").inc()


def record_outbox_event(outcome: str) -> None:
    """Record an outbox event transition."""
    outbox_events_total.labels(outcome=outcome).inc()


def record_due_deliveries(count: int) -> None:
    webhook_due_deliveries.set(count)


def record_idempotency_outcome(outcome: str) -> None:
    """Record how the idempotency layer handled a request."""
    idempotency_requests_total.labels(outcome=outcome).inc()


def record_http_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Record an HTTP request."""
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_latency.labels(method=method, endpoint=endpoint).observe(duration)


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST
