"""Dashboard and provider listing routes."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request

from pingboard.api.dependencies import get_dashboard_service, get_providers
from pingboard.config import ProviderConfig
from pingboard.core.dashboard import DashboardService
from pingboard.core.rate_limiter import limiter
from pingboard.schemas.dashboard import (
    DashboardData,
    ProviderListResponse,
    ProviderSummary,
    RefreshMode,
)
from pingboard.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/dashboard", response_model=DashboardData)
@limiter.limit("120/minute")
async def get_dashboard(
    request: Request,
    refresh: RefreshMode = Query(default=RefreshMode.MISSING),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """
    Get provider timelines for the status page.

    Args:
        refresh: ``always`` probes unless the poll interval has not elapsed,
            ``missing`` probes only when there is no history, ``never``
            only reads history
    """
    data = await dashboard.load_dashboard_data(refresh)

    logger.info(
        "Served dashboard data",
        extra={"refresh": refresh.value, "providers": data.total}
    )
    return data


@router.get("/providers", response_model=ProviderListResponse)
@limiter.limit("60/minute")
async def list_providers(
    request: Request,
    providers: List[ProviderConfig] = Depends(get_providers)
):
    """List configured providers with masked keys."""
    summaries = [
        ProviderSummary(
            id=p.id,
            name=p.name,
            type=p.type.value,
            endpoint=p.endpoint,
            model=p.model,
            key=p.masked_credential,
        )
        for p in providers
    ]
    return ProviderListResponse(providers=summaries, total=len(summaries))
