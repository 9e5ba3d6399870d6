"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import pytest
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Keep the module-level app in pingboard.main from picking up a real setup
os.environ.setdefault("APP_ENV", "development")
os.environ["CHECK_BACKGROUND_POLLING"] = "false"

from pingboard.config import ProviderConfig
from pingboard.core.history_store import HistoryStore
from pingboard.database.base import Base
from pingboard.schemas.check import CheckResult, HealthStatus, ProviderType

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_provider(
    provider_id: str = "openai",
    name: Optional[str] = None,
    provider_type: ProviderType = ProviderType.OPENAI,
    endpoint: str = "https://api.openai.com/v1/chat/completions",
    model: str = "gpt-4o-mini",
    key: str = "sk-test-1234567890"
) -> ProviderConfig:
    """Build a provider config for tests."""
    return ProviderConfig(
        id=provider_id,
        name=name or provider_id,
        type=provider_type,
        endpoint=endpoint,
        model=model,
        credential=SecretStr(key),
    )


def make_result(
    provider_id: str = "openai",
    checked_at: Optional[datetime] = None,
    status: HealthStatus = HealthStatus.OPERATIONAL,
    latency_ms: Optional[int] = 420,
    name: Optional[str] = None,
    message: str = "OK (HTTP 200)"
) -> CheckResult:
    """Build a probe result for tests."""
    return CheckResult(
        provider_id=provider_id,
        name=name or provider_id,
        type=ProviderType.OPENAI,
        endpoint="https://api.openai.com/v1/chat/completions",
        model="gpt-4o-mini",
        status=status,
        latency_ms=latency_ms,
        checked_at=checked_at or datetime.now(timezone.utc),
        message=message,
    )


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory database shared by every session of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def history_store(session_factory) -> HistoryStore:
    """History store with the default window and cap."""
    return HistoryStore(session_factory)


@pytest.fixture
def openai_provider() -> ProviderConfig:
    return make_provider()


@pytest.fixture
def gemini_provider() -> ProviderConfig:
    return make_provider(
        provider_id="gemini",
        name="Gemini",
        provider_type=ProviderType.GEMINI,
        endpoint="https://generativelanguage.googleapis.com/v1beta",
        model="gemini-1.5-flash",
        key="AIza-test-key"
    )


@pytest.fixture
def anthropic_provider() -> ProviderConfig:
    return make_provider(
        provider_id="claude",
        name="Claude",
        provider_type=ProviderType.ANTHROPIC,
        endpoint="https://api.anthropic.com",
        model="claude-3-5-haiku-latest",
        key="sk-ant-test-key"
    )
