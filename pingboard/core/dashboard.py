"""Dashboard read path: history, optional refresh, timelines."""

from datetime import datetime, timezone
from typing import List, Sequence

from pingboard.config import ProviderConfig
from pingboard.core.history_store import HistoryStore
from pingboard.core.health_checker import display_sort_key
from pingboard.core.poll_cache import PollCache, filter_history
from pingboard.schemas.check import HistoryMap
from pingboard.schemas.dashboard import (
    DashboardData,
    ProviderTimeline,
    RefreshMode,
    TimelineItem,
)
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


def format_time(value: datetime) -> str:
    """Render a timestamp in UTC for display."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIME_FORMAT)


def build_timelines(history: HistoryMap) -> List[ProviderTimeline]:
    """Per-provider timelines sorted by the latest display name; empty series are skipped."""
    timelines = []
    for provider_id, series in history.items():
        if not series:
            continue
        ordered = sorted(series, key=lambda r: r.checked_at, reverse=True)
        items = [
            TimelineItem(**r.model_dump(), formatted_time=format_time(r.checked_at))
            for r in ordered
        ]
        timelines.append(ProviderTimeline(id=provider_id, items=items, latest=items[0]))

    timelines.sort(key=lambda t: display_sort_key(t.latest.name))
    return timelines


class DashboardService:
    """
    Serves dashboard data for the configured providers.

    Args:
        providers: Configured providers (read-only)
        poll_cache: Coalescer deciding whether a probe runs
        history_store: Durable history
        poll_interval_label: Human readable poll interval
    """

    def __init__(
        self,
        providers: Sequence[ProviderConfig],
        poll_cache: PollCache,
        history_store: HistoryStore,
        poll_interval_label: str
    ):
        self.providers = list(providers)
        self.poll_cache = poll_cache
        self.history_store = history_store
        self.poll_interval_label = poll_interval_label

    @property
    def provider_ids(self) -> List[str]:
        return [p.id for p in self.providers]

    async def refresh(self, force: bool = False) -> HistoryMap:
        """Probe through the poll cache; unless ``force``, a fresh cache is returned as is."""
        return await self.poll_cache.refresh(self.providers, force=force)

    async def load_dashboard_data(
        self,
        refresh_mode: RefreshMode = RefreshMode.MISSING
    ) -> DashboardData:
        """
        Build the dashboard payload.

        Args:
            refresh_mode: ``always`` goes through the poll cache, ``missing``
                only when no history exists yet, ``never`` reads history only

        Returns:
            DashboardData: Timelines, last update time and poll interval
        """
        if self.providers:
            history = filter_history(
                await self.history_store.load(self.provider_ids),
                self.provider_ids
            )
        else:
            history = {}

        if refresh_mode is RefreshMode.ALWAYS or (
            refresh_mode is RefreshMode.MISSING and self.providers and not history
        ):
            history = await self.refresh()

        timelines = build_timelines(history)
        newest = max(
            (t.latest.checked_at for t in timelines),
            default=None
        )

        logger.debug(
            "Dashboard data assembled",
            extra={"refresh_mode": refresh_mode.value, "providers": len(timelines)}
        )

        return DashboardData(
            provider_timelines=timelines,
            last_updated=format_time(newest) if newest else None,
            total=len(timelines),
            poll_interval_label=self.poll_interval_label,
            poll_interval_ms=self.poll_cache.interval_ms,
        )
