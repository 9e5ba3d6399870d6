"""Probe runner and concurrent fan-out over all configured providers."""

import asyncio
import time
import unicodedata
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import aiohttp

from pingboard.config import ProviderConfig
from pingboard.core.adapters import ProbeRequest, get_adapter
from pingboard.core.metrics import MetricsCollector
from pingboard.core.status import (
    DEGRADED_THRESHOLD_MS,
    Classification,
    classify_exception,
    classify_response,
)
from pingboard.schemas.check import CheckResult, HealthStatus
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


def display_sort_key(name: str) -> Tuple[str, str]:
    """Case-insensitive, accent-insensitive ordering key for display names."""
    normalized = unicodedata.normalize("NFKD", name)
    folded = "".join(c for c in normalized if not unicodedata.combining(c)).casefold()
    return folded, name


class HealthChecker:
    """
    Probes provider endpoints over a shared aiohttp session.

    Every probe is bounded by its own timeout, so a slow provider only
    cancels its own request. Probes never raise: transport errors,
    timeouts and non-2xx responses all become ``failed`` results.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        degraded_threshold_ms: int = DEGRADED_THRESHOLD_MS,
        max_concurrent: int = 20,
        metrics: Optional[MetricsCollector] = None
    ):
        """
        Initialize health checker.

        Args:
            timeout_seconds: Hard deadline for each probe
            degraded_threshold_ms: Slowest latency still counted as operational
            max_concurrent: Connection limit of the shared session
            metrics: Collector receiving one sample per probe
        """
        self.timeout_seconds = timeout_seconds
        self.degraded_threshold_ms = degraded_threshold_ms
        self.max_concurrent = max_concurrent
        self.metrics = metrics
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        """Open the shared HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                connector=aiohttp.TCPConnector(limit=self.max_concurrent),
            )
            logger.info(
                "HTTP session started",
                extra={
                    "timeout_seconds": self.timeout_seconds,
                    "max_concurrent": self.max_concurrent
                }
            )

    async def close(self) -> None:
        """Close the shared HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("HTTP session closed")

    async def check_provider(self, config: ProviderConfig) -> CheckResult:
        """
        Probe one provider and classify the outcome.

        Args:
            config: Provider to probe

        Returns:
            CheckResult: Exactly one result; never raises for probe failures

        Example:
            ```python
            async with HealthChecker() as checker:
                result = await checker.check_provider(provider)
                print(result.status, result.latency_ms)
            ```
        """
        request: Optional[ProbeRequest] = None
        try:
            adapter = get_adapter(config.type)
            request = adapter.build_request(config)
            status_code, latency_ms, body = await asyncio.wait_for(
                self._send(request),
                timeout=self.timeout_seconds
            )
        except Exception as e:
            classification = classify_exception(e)
            logger.warning(
                "Provider probe failed",
                extra={
                    "provider_id": config.id,
                    "provider_type": config.type.value,
                    "error_type": e.__class__.__name__,
                    "error": classification.message
                }
            )
            result = self._build_result(config, request, classification, None)
        else:
            ok = 200 <= status_code < 300
            error_message = "" if ok else adapter.extract_error_message(body)
            classification = classify_response(
                ok,
                status_code,
                latency_ms,
                error_message,
                degraded_threshold_ms=self.degraded_threshold_ms
            )
            logger.info(
                "Provider probe completed",
                extra={
                    "provider_id": config.id,
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                    "status": classification.status.value
                }
            )
            result = self._build_result(config, request, classification, latency_ms)

        if self.metrics:
            self.metrics.record_probe(result)
        return result

    async def _send(self, request: ProbeRequest) -> Tuple[int, int, str]:
        """Issue the request; latency is taken when the response headers arrive."""
        if self.session is None:
            await self.start()

        started = time.perf_counter()
        async with self.session.request(
            request.method,
            request.url,
            headers=request.headers,
            json=request.body
        ) as response:
            latency_ms = int(round((time.perf_counter() - started) * 1000))
            body = await response.text(errors="replace")
            return response.status, latency_ms, body

    @staticmethod
    def _build_result(
        config: ProviderConfig,
        request: Optional[ProbeRequest],
        classification: Classification,
        latency_ms: Optional[int]
    ) -> CheckResult:
        return CheckResult(
            provider_id=config.id,
            name=config.name,
            type=config.type,
            endpoint=request.reported_endpoint if request else config.endpoint,
            model=config.model,
            status=classification.status,
            latency_ms=latency_ms,
            checked_at=datetime.now(timezone.utc),
            message=classification.message,
        )

    async def _check_isolated(self, config: ProviderConfig) -> CheckResult:
        # A bug in one probe must not take down the batch
        try:
            return await self.check_provider(config)
        except Exception as e:
            logger.exception(
                "Unexpected error while probing provider",
                extra={"provider_id": config.id, "error": str(e)}
            )
            return self._build_result(
                config, None, classify_exception(e), None
            )

    async def run_provider_checks(
        self,
        configs: Sequence[ProviderConfig]
    ) -> List[CheckResult]:
        """
        Probe all providers concurrently.

        Args:
            configs: Providers to probe

        Returns:
            list[CheckResult]: One result per provider, sorted by display name
        """
        if not configs:
            return []

        logger.info("Probing providers", extra={"count": len(configs)})

        results = await asyncio.gather(
            *(self._check_isolated(config) for config in configs)
        )
        results = sorted(results, key=lambda r: display_sort_key(r.name))

        failed = sum(1 for r in results if r.status is HealthStatus.FAILED)
        logger.info(
            "Completed probing providers",
            extra={
                "total": len(results),
                "failed": failed,
                "healthy": len(results) - failed
            }
        )
        return results
