"""Probing engine: adapters, probe runner, poll cache and history."""

from pingboard.core.dashboard import DashboardService
from pingboard.core.health_checker import HealthChecker
from pingboard.core.history_store import HistoryStore
from pingboard.core.poll_cache import PollCache

__all__ = ["DashboardService", "HealthChecker", "HistoryStore", "PollCache"]
