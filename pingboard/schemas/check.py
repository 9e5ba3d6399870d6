"""Pydantic schemas for probe results."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_MESSAGE_LENGTH = 280


class ProviderType(str, Enum):
    """Provider families with a protocol adapter."""
    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


class HealthStatus(str, Enum):
    """Health state of a single probe."""
    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    FAILED = "failed"


class CheckResult(BaseModel):
    """Outcome of one probe against one provider."""
    provider_id: str
    name: str
    type: ProviderType
    endpoint: str
    model: str
    status: HealthStatus
    latency_ms: Optional[int] = Field(default=None, ge=0)
    checked_at: datetime
    message: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)

    model_config = ConfigDict(frozen=True, from_attributes=True)


# provider_id -> results, newest first
HistoryMap = Dict[str, List[CheckResult]]
