"""Service health and metrics endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import Response

from pingboard import __version__
from pingboard.core.metrics import CONTENT_TYPE_LATEST
from pingboard.schemas.dashboard import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint.

    Reports the version, the number of configured providers and the state
    and next run of background polling.
    """
    state = request.app.state
    scheduler = getattr(state, "scheduler", None)
    config = getattr(state, "config", None)

    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        providers=len(config.providers) if config else 0,
        scheduler="running" if scheduler and scheduler.running else "stopped",
        polling_job=scheduler.get_job_status() if scheduler else None
    )


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus exposition; mounted by the app factory when enabled."""
    collector = request.app.state.metrics
    return Response(content=collector.generate_metrics(), media_type=CONTENT_TYPE_LATEST)
