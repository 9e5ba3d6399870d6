"""Tests for the dashboard read path."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pingboard.core.dashboard import DashboardService, build_timelines, format_time
from pingboard.core.health_checker import HealthChecker
from pingboard.core.poll_cache import PollCache
from pingboard.schemas.dashboard import RefreshMode

from tests.conftest import make_provider, make_result

NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def providers():
    return [make_provider("openai", name="OpenAI"), make_provider("claude", name="Claude")]


@pytest.fixture
def checker():
    checker = MagicMock(spec=HealthChecker)
    checker.run_provider_checks = AsyncMock(
        side_effect=lambda configs: [make_result(c.id, name=c.name) for c in configs]
    )
    return checker


@pytest.fixture
def dashboard(providers, checker, history_store):
    poll_cache = PollCache(checker, history_store, interval_seconds=60)
    return DashboardService(providers, poll_cache, history_store, poll_interval_label="1 minute")


@pytest.mark.unit
def test_format_time_is_utc():
    local = NOW.astimezone(timezone(timedelta(hours=8)))

    assert format_time(local) == "2026-10-19 08:30:00 UTC"


@pytest.mark.unit
def test_build_timelines_orders_items_and_providers():
    history = {
        "b": [make_result("b", name="beta", checked_at=NOW - timedelta(minutes=2))],
        "a": [
            make_result("a", name="Alpha", checked_at=NOW - timedelta(minutes=1)),
            make_result("a", name="Alpha", checked_at=NOW),
        ],
        "empty": [],
    }

    timelines = build_timelines(history)

    assert [t.id for t in timelines] == ["a", "b"]
    assert timelines[0].latest.checked_at == NOW
    assert [i.checked_at for i in timelines[0].items] == [NOW, NOW - timedelta(minutes=1)]
    assert timelines[0].latest.formatted_time == "2026-10-19 08:30:00 UTC"


@pytest.mark.functional
class TestLoadDashboardData:

    async def test_cold_start_with_never_is_no_data_yet(self, dashboard, checker):
        data = await dashboard.load_dashboard_data(RefreshMode.NEVER)

        assert data.provider_timelines == []
        assert data.total == 0
        assert data.last_updated is None
        assert data.poll_interval_ms == 60000
        assert data.poll_interval_label == "1 minute"
        checker.run_provider_checks.assert_not_awaited()

    async def test_missing_probes_on_cold_start(self, dashboard, checker):
        data = await dashboard.load_dashboard_data(RefreshMode.MISSING)

        assert data.total == 2
        assert [t.latest.name for t in data.provider_timelines] == ["Claude", "OpenAI"]
        assert data.last_updated is not None
        checker.run_provider_checks.assert_awaited_once()

    async def test_missing_does_not_probe_when_history_exists(self, dashboard, checker, history_store):
        await history_store.append([make_result("openai", name="OpenAI")])

        data = await dashboard.load_dashboard_data(RefreshMode.MISSING)

        assert data.total == 1
        checker.run_provider_checks.assert_not_awaited()

    async def test_always_probes_once_per_interval(self, dashboard, checker):
        await dashboard.load_dashboard_data(RefreshMode.ALWAYS)
        data = await dashboard.load_dashboard_data(RefreshMode.ALWAYS)

        assert checker.run_provider_checks.await_count == 1
        assert data.total == 2
        assert all(len(t.items) == 1 for t in data.provider_timelines)

    async def test_unconfigured_providers_are_hidden(self, dashboard, history_store):
        await history_store.append([
            make_result("openai", name="OpenAI"),
            make_result("retired", name="Retired"),
        ])

        data = await dashboard.load_dashboard_data(RefreshMode.NEVER)

        assert [t.id for t in data.provider_timelines] == ["openai"]

    async def test_last_updated_is_newest_across_providers(self, dashboard, history_store):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        await history_store.append([
            make_result("openai", name="OpenAI", checked_at=now - timedelta(minutes=3)),
            make_result("claude", name="Claude", checked_at=now),
        ])

        data = await dashboard.load_dashboard_data(RefreshMode.NEVER)

        assert data.last_updated == format_time(now)

    async def test_no_providers_configured(self, history_store, checker):
        poll_cache = PollCache(checker, history_store, interval_seconds=60)
        service = DashboardService([], poll_cache, history_store, poll_interval_label="1 minute")
        await history_store.append([make_result("openai")])

        data = await service.load_dashboard_data(RefreshMode.ALWAYS)

        assert data.total == 0
        checker.run_provider_checks.assert_not_awaited()
