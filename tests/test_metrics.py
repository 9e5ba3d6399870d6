"""Tests for the Prometheus collector."""

import pytest

from pingboard.core.metrics import MetricsCollector
from pingboard.schemas.check import HealthStatus

from tests.conftest import make_result


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.mark.unit
class TestMetricsCollector:

    def test_collectors_do_not_share_registries(self):
        first, second = MetricsCollector(), MetricsCollector()

        first.record_poll_cache("hit")

        assert second.registry.get_sample_value(
            "pingboard_poll_cache_total", {"outcome": "hit"}
        ) is None

    def test_record_probe(self, metrics):
        metrics.record_probe(make_result(latency_ms=1500, name="OpenAI"))

        registry = metrics.registry
        assert registry.get_sample_value(
            "pingboard_probes_total",
            {"provider_id": "openai", "provider_type": "openai", "status": "operational"}
        ) == 1.0
        assert registry.get_sample_value(
            "pingboard_probe_latency_seconds_sum", {"provider_id": "openai"}
        ) == 1.5
        assert registry.get_sample_value(
            "pingboard_provider_status", {"provider_id": "openai", "provider_name": "OpenAI"}
        ) == 2

    def test_failed_probe_without_latency(self, metrics):
        metrics.record_probe(make_result(latency_ms=None, status=HealthStatus.FAILED))

        assert metrics.registry.get_sample_value(
            "pingboard_probe_latency_seconds_count", {"provider_id": "openai"}
        ) is None
        assert metrics.registry.get_sample_value(
            "pingboard_provider_status", {"provider_id": "openai", "provider_name": "openai"}
        ) == 0

    def test_history_errors(self, metrics):
        metrics.record_history_error("evict")
        metrics.record_history_error("evict")

        assert metrics.registry.get_sample_value(
            "pingboard_history_errors_total", {"operation": "evict"}
        ) == 2.0

    def test_generate_metrics(self, metrics):
        metrics.record_poll_cache("joined")

        output = metrics.generate_metrics()

        assert b'pingboard_poll_cache_total{outcome="joined"} 1.0' in output
