"""FastAPI application entry point for Pingboard."""

import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from pingboard import __version__
from pingboard.api import dashboard, health
from pingboard.config import Config, load_config
from pingboard.core.dashboard import DashboardService
from pingboard.core.health_checker import HealthChecker
from pingboard.core.history_store import HistoryStore
from pingboard.core.metrics import MetricsCollector
from pingboard.core.poll_cache import PollCache
from pingboard.core.rate_limiter import limiter
from pingboard.core.scheduler import PollingScheduler
from pingboard.database.base import Base
from pingboard.database.session import create_engine, create_session_factory
from pingboard.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _ensure_sqlite_directory(url: str) -> None:
    # sqlite+aiosqlite:///./data/x.db -> ./data
    if url.startswith("sqlite") and ":memory:" not in url and ":///" in url:
        Path(url.split(":///", 1)[1]).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Build and tear down the probing components.

    Everything is stored on ``app.state``; the poll cache lives exactly as
    long as the application.
    """
    config: Config = app.state.config

    setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file,
        console=config.logging.console
    )
    logger.info("Starting Pingboard", extra={"version": __version__})

    _ensure_sqlite_directory(config.database.url)
    engine = create_engine(config.database)
    metrics: MetricsCollector = app.state.metrics
    health_checker = HealthChecker(
        timeout_seconds=config.polling.timeout_seconds,
        degraded_threshold_ms=config.polling.degraded_threshold_ms,
        max_concurrent=config.polling.max_concurrent,
        metrics=metrics
    )
    scheduler: Optional[PollingScheduler] = None
    app.state.scheduler = None

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

        await health_checker.start()

        history_store = HistoryStore(
            create_session_factory(engine),
            window=timedelta(minutes=config.history.window_minutes),
            max_points=config.history.max_points,
            metrics=metrics
        )
        poll_cache = PollCache(
            health_checker,
            history_store,
            interval_seconds=config.polling.interval_seconds,
            metrics=metrics
        )
        dashboard_service = DashboardService(
            config.providers,
            poll_cache,
            history_store,
            poll_interval_label=config.polling.interval_label
        )
        app.state.dashboard = dashboard_service

        if config.polling.background:
            scheduler = PollingScheduler(dashboard_service, config.polling.interval_seconds)
            app.state.scheduler = scheduler
            await scheduler.start()

        logger.info(
            "Pingboard started",
            extra={
                "providers": len(config.providers),
                "poll_interval_seconds": config.polling.interval_seconds,
                "background_polling": scheduler is not None and scheduler.running
            }
        )

        yield
    finally:
        logger.info("Shutting down Pingboard")
        if scheduler:
            await scheduler.stop()
        await health_checker.close()
        await engine.dispose()
        logger.info("Pingboard shut down")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Application configuration; loaded from YAML and the
            environment when omitted

    Returns:
        FastAPI: Configured application
    """
    config = config or load_config()

    app = FastAPI(
        title="Pingboard",
        description="Health dashboard for generative-AI API providers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.metrics = MetricsCollector()
    app.state.limiter = limiter

    if config.api.cors.enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors.allow_origins,
            allow_methods=config.api.cors.allow_methods,
            allow_headers=config.api.cors.allow_headers,
        )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "error": str(exc)
            }
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request_id},
            headers={"X-Request-ID": request_id}
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "Rate limit exceeded",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "client": get_remote_address(request)
            }
        )
        return JSONResponse(
            status_code=429,
            content={
                "detail": "Rate limit exceeded. Please try again later.",
                "request_id": request_id
            },
            headers={"X-Request-ID": request_id, "Retry-After": "60"}
        )

    app.include_router(health.router, tags=["Health"])
    app.include_router(dashboard.router, prefix="/api/v1", tags=["Dashboard"])
    if config.prometheus.enabled:
        app.add_api_route(
            config.prometheus.path,
            health.metrics_endpoint,
            methods=["GET"],
            include_in_schema=False
        )

    @app.get("/")
    async def root():
        """Service information."""
        return {
            "name": "Pingboard",
            "version": __version__,
            "dashboard": "/api/v1/dashboard",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings: Config = app.state.config
    uvicorn.run(
        "pingboard.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
        log_level=settings.logging.level.lower()
    )
