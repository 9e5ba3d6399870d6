"""Request-scoped access to the components created at startup."""

from typing import List

from fastapi import Request

from pingboard.config import ProviderConfig
from pingboard.core.dashboard import DashboardService


def get_dashboard_service(request: Request) -> DashboardService:
    """Dashboard service stored on ``app.state`` by the lifespan handler."""
    return request.app.state.dashboard


def get_providers(request: Request) -> List[ProviderConfig]:
    """Configured providers."""
    return request.app.state.config.providers
