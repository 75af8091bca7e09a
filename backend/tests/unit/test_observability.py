"""Unit tests for request correlation ids and health aggregation"""

import uuid

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from observability.health import ComponentHealth, HealthStatus, _probe, get_overall_health
from observability.request_id import resolve_request_id


class TestResolveRequestId:

    def test_well_formed_id_is_reused(self):
        assert resolve_request_id("req-123") == "req-123"
        assert resolve_request_id("trace:abc.DEF_9") == "trace:abc.DEF_9"

    @pytest.mark.parametrize("incoming", [None, "", "has space", "x" * 129, "line\nbreak"])
    def test_malformed_id_is_replaced(self, incoming):
        request_id = resolve_request_id(incoming)

        assert request_id != incoming
        uuid.UUID(request_id)


def _components(*statuses):
    return {f"c{i}": ComponentHealth(status=s) for i, s in enumerate(statuses)}


class TestOverallHealth:

    def test_all_healthy(self):
        assert get_overall_health(_components(HealthStatus.HEALTHY, HealthStatus.HEALTHY)) == HealthStatus.HEALTHY

    def test_degraded_component(self):
        overall = get_overall_health(_components(HealthStatus.HEALTHY, HealthStatus.DEGRADED))
        assert overall == HealthStatus.DEGRADED

    def test_unhealthy_wins(self):
        overall = get_overall_health(
            _components(HealthStatus.DEGRADED, HealthStatus.UNHEALTHY, HealthStatus.HEALTHY)
        )
        assert overall == HealthStatus.UNHEALTHY


class TestProbe:

    def test_success_records_latency(self):
        result = _probe("Thing", lambda: None, "Thing OK", HealthStatus.UNHEALTHY)

        assert result.status == HealthStatus.HEALTHY
        assert result.message == "Thing OK"
        assert result.latency_ms is not None

    def test_failure_maps_to_given_status(self):
        def broken():
            raise ConnectionError("refused")

        result = _probe("Redis", broken, "Redis OK", HealthStatus.DEGRADED)

        assert result.status == HealthStatus.DEGRADED
        assert "refused" in result.message
        assert result.latency_ms is None
