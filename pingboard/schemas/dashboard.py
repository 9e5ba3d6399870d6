"""Pydantic schemas for the dashboard read API."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pingboard.schemas.check import CheckResult


class RefreshMode(str, Enum):
    """When a dashboard read may trigger a probe."""
    ALWAYS = "always"
    MISSING = "missing"
    NEVER = "never"


class TimelineItem(CheckResult):
    """Probe result with a preformatted timestamp."""
    formatted_time: str


class ProviderTimeline(BaseModel):
    """History of one provider, newest first."""
    id: str
    items: List[TimelineItem]
    latest: TimelineItem


class DashboardData(BaseModel):
    """Everything the status page renders."""
    provider_timelines: List[ProviderTimeline] = Field(default_factory=list)
    last_updated: Optional[str] = None
    total: int = 0
    poll_interval_label: str
    poll_interval_ms: int


class ProviderSummary(BaseModel):
    """A configured provider as shown to operators; the key is masked."""
    id: str
    name: str
    type: str
    endpoint: str
    model: str
    key: str


class ProviderListResponse(BaseModel):
    """Configured providers."""
    providers: List[ProviderSummary]
    total: int


class HealthResponse(BaseModel):
    """Service liveness."""
    status: str = Field(default="healthy")
    version: str
    timestamp: str
    providers: int = 0
    scheduler: str = Field(default="running")
    polling_job: Optional[Dict[str, Any]] = None
