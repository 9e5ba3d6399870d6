"""Per provider-set cache that coalesces concurrent probe requests."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence

from pingboard.config import ProviderConfig
from pingboard.core.health_checker import HealthChecker
from pingboard.core.history_store import HistoryStore
from pingboard.core.metrics import MetricsCollector
from pingboard.schemas.check import HistoryMap
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

EMPTY_KEY = "__empty__"


@dataclass
class PollCacheEntry:
    """Cache state for one provider set."""
    last_probe_at: float = 0.0
    history: Optional[HistoryMap] = None
    inflight: Optional["asyncio.Task[HistoryMap]"] = None


def cache_key(provider_ids: Iterable[str], interval_ms: int) -> str:
    """Key made of the poll interval and the sorted, deduplicated provider ids."""
    ids = sorted(set(provider_ids))
    return f"{interval_ms}:{'|'.join(ids) if ids else EMPTY_KEY}"


def filter_history(history: HistoryMap, allowed_ids: Iterable[str]) -> HistoryMap:
    """Drop series of providers that are no longer configured."""
    allowed = set(allowed_ids)
    return {pid: series for pid, series in history.items() if pid in allowed}


class PollCache:
    """
    Decides when providers are probed again.

    Within one poll interval the cached history is returned as is. Once it
    is stale, the first caller starts a probe and every concurrent caller
    for the same provider set waits on that same probe.

    Created once at startup and handed to whatever serves dashboard reads.
    """

    def __init__(
        self,
        health_checker: HealthChecker,
        history_store: HistoryStore,
        interval_seconds: float,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.health_checker = health_checker
        self.history_store = history_store
        self.interval_seconds = interval_seconds
        self.metrics = metrics
        self.clock = clock
        self._entries: Dict[str, PollCacheEntry] = {}
        self._lock = asyncio.Lock()

    @property
    def interval_ms(self) -> int:
        return int(self.interval_seconds * 1000)

    def get_entry(self, key: str) -> PollCacheEntry:
        """Return the entry for ``key``, creating it on first access."""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = PollCacheEntry()
        return entry

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.record_poll_cache(outcome)

    def _is_fresh(self, entry: PollCacheEntry) -> bool:
        return (
            entry.history is not None
            and self.clock() - entry.last_probe_at < self.interval_seconds
        )

    async def refresh(
        self,
        providers: Sequence[ProviderConfig],
        force: bool = False
    ) -> HistoryMap:
        """
        Return history for ``providers``, probing them if the cache is stale.

        Args:
            providers: Configured providers to probe
            force: Probe even if the cache is fresh; a probe already in
                flight is still joined rather than duplicated

        Returns:
            HistoryMap: History restricted to the given providers
        """
        if not providers:
            return {}

        key = cache_key((p.id for p in providers), self.interval_ms)
        entry = self.get_entry(key)

        async with self._lock:
            if not force and self._is_fresh(entry):
                self._record("hit")
                return entry.history

            if entry.inflight is None:
                self._record("probe")
                entry.inflight = asyncio.ensure_future(
                    self._probe(key, entry, providers)
                )
            else:
                self._record("joined")
            inflight = entry.inflight

        # Shielded so one cancelled caller does not cancel the shared probe
        return await asyncio.shield(inflight)

    async def _probe(
        self,
        key: str,
        entry: PollCacheEntry,
        providers: Sequence[ProviderConfig]
    ) -> HistoryMap:
        provider_ids = [p.id for p in providers]
        try:
            results = await self.health_checker.run_provider_checks(providers)
            if results:
                history = await self.history_store.append(results, provider_ids)
            else:
                history = await self.history_store.load(provider_ids)
            history = filter_history(history, provider_ids)

            entry.history = history
            entry.last_probe_at = self.clock()
            logger.info(
                "Poll cache refreshed",
                extra={"cache_key": key, "results": len(results)}
            )
            return history
        finally:
            entry.inflight = None
