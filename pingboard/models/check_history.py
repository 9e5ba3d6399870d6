"""CheckHistory model - durable record of one probe result."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from pingboard.database.base import Base
from pingboard.schemas.check import CheckResult


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC for storage and comparison."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CheckHistory(Base):
    """
    One immutable probe result, keyed by provider and timestamp.

    Attributes:
        id: Primary key
        provider_id: Stable provider identifier
        provider_name: Display name at the time of the probe
        provider_type: Provider family (openai, gemini, anthropic)
        endpoint: Endpoint reported for the probe
        model: Model that was probed
        status: operational, degraded or failed
        latency_ms: Measured latency, null when no response arrived
        checked_at: Probe completion time (naive UTC)
        message: Outcome summary
    """

    __tablename__ = "check_history"

    id = Column(Integer, primary_key=True, autoincrement=True)

    provider_id = Column(String(255), nullable=False, index=True)
    provider_name = Column(String(255), nullable=False)
    provider_type = Column(String(32), nullable=False)
    endpoint = Column(String(2048), nullable=False)
    model = Column(String(255), nullable=False)

    status = Column(String(16), nullable=False)
    latency_ms = Column(Integer, nullable=True)
    checked_at = Column(DateTime, nullable=False, index=True)
    message = Column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return (
            f"<CheckHistory(id={self.id}, provider_id='{self.provider_id}', "
            f"status='{self.status}', checked_at={self.checked_at})>"
        )

    @classmethod
    def from_result(cls, result: CheckResult) -> "CheckHistory":
        """Build a record from a probe result."""
        return cls(
            provider_id=result.provider_id,
            provider_name=result.name,
            provider_type=result.type.value,
            endpoint=result.endpoint,
            model=result.model,
            status=result.status.value,
            latency_ms=result.latency_ms,
            checked_at=to_naive_utc(result.checked_at),
            message=result.message,
        )

    def to_result(self) -> CheckResult:
        """Convert the record back into a probe result."""
        return CheckResult(
            provider_id=self.provider_id,
            name=self.provider_name,
            type=self.provider_type,
            endpoint=self.endpoint,
            model=self.model,
            status=self.status,
            latency_ms=self.latency_ms,
            checked_at=self.checked_at.replace(tzinfo=timezone.utc),
            message=self.message or "",
        )
