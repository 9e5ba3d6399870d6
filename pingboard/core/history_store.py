"""Windowed, capped probe history on top of the SQL store."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pingboard.core.metrics import MetricsCollector
from pingboard.models.check_history import CheckHistory, to_naive_utc
from pingboard.schemas.check import CheckResult, HistoryMap
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_WINDOW = timedelta(hours=1)
MAX_POINTS_PER_PROVIDER = 60

# Rows fetched per load are max_points times this many providers, at least
MIN_FETCH_PROVIDERS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryStore:
    """
    Appends probe results and reads them back per provider.

    Storage failures never reach the caller: they are logged and show up
    as empty history.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        window: timedelta = HISTORY_WINDOW,
        max_points: int = MAX_POINTS_PER_PROVIDER,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        """
        Initialize history store.

        Args:
            session_factory: Factory for async database sessions
            window: Maximum age of a record
            max_points: Maximum number of records returned per provider
            metrics: Collector for storage errors
            clock: Source of the current (aware, UTC) time
        """
        self.session_factory = session_factory
        self.window = window
        self.max_points = max_points
        self.metrics = metrics
        self.clock = clock

    def _cutoff(self) -> datetime:
        return to_naive_utc(self.clock() - self.window)

    def _record_error(self, operation: str) -> None:
        if self.metrics:
            self.metrics.record_history_error(operation)

    async def append(
        self,
        results: Sequence[CheckResult],
        provider_ids: Optional[Iterable[str]] = None
    ) -> HistoryMap:
        """
        Persist results, evict expired records and return fresh history.

        Eviction is best-effort and runs after the insert has committed,
        so a failed eviction never loses new results.

        Args:
            results: Probe results to store
            provider_ids: Optional ids to restrict the returned history to

        Returns:
            HistoryMap: History as returned by :meth:`load`
        """
        if not results:
            return await self.load(provider_ids)

        try:
            async with self.session_factory() as session:
                session.add_all([CheckHistory.from_result(r) for r in results])
                await session.commit()
            logger.debug("Stored probe results", extra={"count": len(results)})
        except Exception as e:
            self._record_error("insert")
            logger.error(
                "Failed to store probe results",
                extra={"count": len(results), "error": str(e)}
            )

        await self.evict_expired()
        return await self.load(provider_ids)

    async def evict_expired(self) -> int:
        """Delete records older than the retention window; returns rows removed."""
        try:
            async with self.session_factory() as session:
                outcome = await session.execute(
                    delete(CheckHistory).where(CheckHistory.checked_at < self._cutoff())
                )
                await session.commit()
        except Exception as e:
            self._record_error("evict")
            logger.error("Failed to evict expired history", extra={"error": str(e)})
            return 0

        removed = outcome.rowcount or 0
        if removed:
            logger.debug("Evicted expired history", extra={"removed": removed})
        return removed

    async def load(self, provider_ids: Optional[Iterable[str]] = None) -> HistoryMap:
        """
        Read recent history grouped per provider.

        Args:
            provider_ids: Restrict the query to these providers (all when None)

        Returns:
            HistoryMap: Per provider, records inside the retention window,
            newest first, at most ``max_points`` each. Empty on failure.
        """
        ids: Optional[List[str]] = sorted(set(provider_ids)) if provider_ids is not None else None
        if ids is not None and not ids:
            return {}

        limit = self.max_points * max(MIN_FETCH_PROVIDERS, len(ids or ()))
        query = (
            select(CheckHistory)
            .where(CheckHistory.checked_at >= self._cutoff())
            .order_by(CheckHistory.checked_at.desc(), CheckHistory.id.desc())
            .limit(limit)
        )
        if ids is not None:
            query = query.where(CheckHistory.provider_id.in_(ids))

        try:
            async with self.session_factory() as session:
                rows = (await session.execute(query)).scalars().all()
            records = [row.to_result() for row in rows]
        except Exception as e:
            self._record_error("load")
            logger.error("Failed to load history", extra={"error": str(e)})
            return {}

        history: HistoryMap = {}
        for record in records:
            series = history.setdefault(record.provider_id, [])
            if len(series) < self.max_points:
                series.append(record)
        return history
