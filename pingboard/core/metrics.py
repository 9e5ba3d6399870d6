"""Prometheus metrics for probes, the poll cache and the history store."""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from pingboard.schemas.check import CheckResult, HealthStatus
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

STATUS_VALUES = {
    HealthStatus.OPERATIONAL: 2,
    HealthStatus.DEGRADED: 1,
    HealthStatus.FAILED: 0,
}


class MetricsCollector:
    """Prometheus metrics collector for Pingboard."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics collector.

        Args:
            registry: Optional custom registry
        """
        self.registry = registry or CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self) -> None:
        self.probes_total = Counter(
            'pingboard_probes_total',
            'Total number of provider probes',
            ['provider_id', 'provider_type', 'status'],
            registry=self.registry
        )

        self.probe_latency = Histogram(
            'pingboard_probe_latency_seconds',
            'Latency of provider probes that received a response',
            ['provider_id'],
            buckets=(0.25, 0.5, 1, 2, 4, 6, 10, 15),
            registry=self.registry
        )

        self.provider_status = Gauge(
            'pingboard_provider_status',
            'Latest provider status (2=operational, 1=degraded, 0=failed)',
            ['provider_id', 'provider_name'],
            registry=self.registry
        )

        self.poll_cache_total = Counter(
            'pingboard_poll_cache_total',
            'Poll cache lookups by outcome',
            ['outcome'],
            registry=self.registry
        )

        self.history_errors_total = Counter(
            'pingboard_history_errors_total',
            'History store operations that failed',
            ['operation'],
            registry=self.registry
        )

    def record_probe(self, result: CheckResult) -> None:
        """Record one probe result."""
        self.probes_total.labels(
            provider_id=result.provider_id,
            provider_type=result.type.value,
            status=result.status.value
        ).inc()

        if result.latency_ms is not None:
            self.probe_latency.labels(
                provider_id=result.provider_id
            ).observe(result.latency_ms / 1000)

        self.provider_status.labels(
            provider_id=result.provider_id,
            provider_name=result.name
        ).set(STATUS_VALUES[result.status])

    def record_poll_cache(self, outcome: str) -> None:
        """Record a poll cache lookup (hit, joined or probe)."""
        self.poll_cache_total.labels(outcome=outcome).inc()

    def record_history_error(self, operation: str) -> None:
        """Record a failed history store operation (insert, evict or load)."""
        self.history_errors_total.labels(operation=operation).inc()

    def generate_metrics(self) -> bytes:
        """Prometheus text exposition of the registry."""
        return generate_latest(self.registry)


__all__ = ["MetricsCollector", "CONTENT_TYPE_LATEST"]
