"""Pydantic schemas for probe results and API responses."""

from pingboard.schemas.check import (
    CheckResult,
    HealthStatus,
    HistoryMap,
    ProviderType,
)
from pingboard.schemas.dashboard import (
    DashboardData,
    HealthResponse,
    ProviderTimeline,
    RefreshMode,
    TimelineItem,
)

__all__ = [
    "CheckResult",
    "HealthStatus",
    "HistoryMap",
    "ProviderType",
    "DashboardData",
    "HealthResponse",
    "ProviderTimeline",
    "RefreshMode",
    "TimelineItem",
]
