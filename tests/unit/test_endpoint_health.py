"""
Unit Tests for endpoint health classification.

Thresholds: healthy >= 95%, degraded >= 80%, unhealthy below; disabled
endpoints are always unhealthy and a recent error downgrades healthy.
"""

from datetime import datetime, timedelta

import pytest

from relay_core.service.webhooks.health import (
    EndpointHealthStatus,
    classify_endpoint_health,
    delivery_rate,
)

NOW = datetime(2024, 6, 1, 12, 0, 0)


class TestDeliveryRate:
    def test_no_data_is_full_rate(self):
        assert delivery_rate(0, 0) == 100

    def test_rounds_to_integer(self):
        assert delivery_rate(2, 3) == 67

    def test_halves_round_up(self):
        assert delivery_rate(189, 200) == 95
        assert delivery_rate(1, 8) == 13

    def test_all_failed(self):
        assert delivery_rate(0, 10) == 0


class TestClassifyEndpointHealth:
    """Tests for classify_endpoint_health()."""

    @pytest.mark.parametrize(
        "successes,failures,expected",
        [
            (96, 4, EndpointHealthStatus.HEALTHY),
            (95, 5, EndpointHealthStatus.HEALTHY),
            (85, 15, EndpointHealthStatus.DEGRADED),
            (80, 20, EndpointHealthStatus.DEGRADED),
            (79, 21, EndpointHealthStatus.UNHEALTHY),
            (50, 50, EndpointHealthStatus.UNHEALTHY),
        ],
    )
    def test_thresholds(self, successes, failures, expected):
        rate = delivery_rate(successes, successes + failures)

        assert classify_endpoint_health(rate, False, None, NOW) == expected

    def test_disabled_is_unhealthy(self):
        assert classify_endpoint_health(100, True, None, NOW) == EndpointHealthStatus.UNHEALTHY

    def test_recent_error_degrades_healthy(self):
        last_error_at = NOW - timedelta(minutes=10)

        assert classify_endpoint_health(99, False, last_error_at, NOW) == EndpointHealthStatus.DEGRADED

    def test_old_error_keeps_healthy(self):
        last_error_at = NOW - timedelta(hours=2)

        assert classify_endpoint_health(99, False, last_error_at, NOW) == EndpointHealthStatus.HEALTHY

    def test_recent_error_does_not_upgrade_unhealthy(self):
        last_error_at = NOW - timedelta(minutes=1)

        assert classify_endpoint_health(50, False, last_error_at, NOW) == EndpointHealthStatus.UNHEALTHY
