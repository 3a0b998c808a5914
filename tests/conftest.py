"""
Shared pytest fixtures and configuration.
"""

from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from focus_engine.actions.blocking import BlockingRuleSynchronizer
from focus_engine.actions.pomodoro import TimerStateMachine
from focus_engine.api.app import create_app
from focus_engine.config import Config
from focus_engine.settings import SettingsStore
from focus_engine.stats.aggregator import StatsAggregator


class FakeClock:
    """Mutable stand-in for date.today()."""

    def __init__(self, day: date):
        self.day = day

    def __call__(self) -> date:
        return self.day


@pytest.fixture
def clock():
    return FakeClock(date(2024, 3, 14))


@pytest.fixture
def settings():
    return SettingsStore()


@pytest.fixture
def blocking():
    return BlockingRuleSynchronizer()


@pytest.fixture
def stats(clock):
    return StatsAggregator(today=clock)


@pytest.fixture
def events():
    return []


@pytest.fixture
def machine(settings, blocking, stats, clock, events):
    """A state machine whose side effects run inline."""
    return TimerStateMachine(settings, blocking, stats, on_change=events.append, clock=clock)


@pytest.fixture
def cfg(tmp_path):
    # the background tick loop is kept out of the way; tests tick explicitly
    return Config(
        data_dir=tmp_path / "data",
        tick_interval_ms=3_600_000,
        save_interval_s=3600,
        desktop_notifications=False,
    )


@pytest.fixture
def app(cfg):
    """Create a fresh app instance per test."""
    return create_app(cfg)


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
