"""Classification of probe outcomes into health states."""

import asyncio
from typing import NamedTuple, Optional

from pingboard.schemas.check import HealthStatus, MAX_MESSAGE_LENGTH

DEGRADED_THRESHOLD_MS = 6000

TIMEOUT_MESSAGE = "Request timed out"
UNKNOWN_ERROR_MESSAGE = "Unknown error"


class Classification(NamedTuple):
    """Health state and the message shown next to it."""
    status: HealthStatus
    message: str


def truncate_message(message: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Clip a message to the stored maximum length."""
    return message if len(message) <= limit else message[:limit]


def classify_response(
    ok: bool,
    status_code: Optional[int],
    latency_ms: int,
    error_message: str = "",
    degraded_threshold_ms: int = DEGRADED_THRESHOLD_MS
) -> Classification:
    """
    Classify a completed HTTP exchange.

    Args:
        ok: Whether the response status was 2xx
        status_code: HTTP status code
        latency_ms: Time until the response arrived
        error_message: Message already extracted from the error body
        degraded_threshold_ms: Slowest latency still counted as operational

    Returns:
        Classification: ``failed`` for non-2xx responses, otherwise
        ``operational`` up to and including the threshold and
        ``degraded`` above it.
    """
    if not ok:
        if error_message:
            message = error_message
        elif status_code is not None:
            message = f"HTTP {status_code}"
        else:
            message = UNKNOWN_ERROR_MESSAGE
        return Classification(HealthStatus.FAILED, truncate_message(message))

    if latency_ms <= degraded_threshold_ms:
        return Classification(HealthStatus.OPERATIONAL, f"OK (HTTP {status_code})")

    return Classification(HealthStatus.DEGRADED, f"Slow response: {latency_ms}ms")


def classify_exception(exc: BaseException) -> Classification:
    """Classify a probe that raised before a response was read."""
    if isinstance(exc, asyncio.TimeoutError):
        return Classification(HealthStatus.FAILED, TIMEOUT_MESSAGE)

    message = str(exc) or exc.__class__.__name__ or UNKNOWN_ERROR_MESSAGE
    return Classification(HealthStatus.FAILED, truncate_message(message))
