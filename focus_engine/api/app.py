"""
FastAPI application — local focus timer API.
Runs on http://127.0.0.1:8766 by default.

Everything the engine owns (settings, stores, state machine, broadcast
channel) lives on app.state, so each create_app() call produces a fully
independent instance. The timer loop and every route handler run on the
event loop thread, which keeps state mutation single-writer.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..actions.blocking import BlockingRuleSynchronizer, HostsFileBackend, InMemoryRuleBackend
from ..actions.notifications import NotificationController
from ..actions.pomodoro import TimerStateMachine
from ..broadcast import BroadcastChannel
from ..commands import CommandDispatcher
from ..config import VERSION, Config, config as default_config
from ..dispatch import EffectDispatcher
from ..recovery import recover, save_snapshot
from ..settings import SettingsStore
from ..stats.aggregator import StatsAggregator
from ..stats.store import FocusStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Background loops
# ---------------------------------------------------------------------------

async def _tick_loop(machine: TimerStateMachine, interval_ms: int) -> None:
    while True:
        await asyncio.sleep(interval_ms / 1000.0)
        try:
            machine.tick()
        except Exception:
            logger.exception("timer tick failed")


async def _save_loop(machine: TimerStateMachine, store: FocusStore, interval_s: int) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, save_snapshot, machine, store)
        except Exception:
            logger.exception("periodic snapshot failed")


def _rule_backend(cfg: Config):
    if cfg.rule_backend == "hosts":
        return HostsFileBackend(cfg.hosts_path)
    return InMemoryRuleBackend()


# ---------------------------------------------------------------------------
# Lifespan — initialises and tears down all per-app state
# ---------------------------------------------------------------------------

def _make_lifespan(cfg: Config):

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        effects = EffectDispatcher()
        channel = BroadcastChannel()
        channel.bind(asyncio.get_running_loop())

        store = FocusStore(cfg.db_path)
        settings = SettingsStore(cfg.settings_path)
        stats = StatsAggregator(store, effects)
        blocking = BlockingRuleSynchronizer(_rule_backend(cfg))
        notifier = NotificationController(
            listener=channel.publish_notification,
            dispatcher=effects,
            desktop=cfg.desktop_notifications,
        )
        machine = TimerStateMachine(
            settings, blocking, stats,
            notifier=notifier,
            dispatcher=effects,
            on_change=channel.publish_state,
        )
        recover(machine, settings, stats, store)

        app.state.config = cfg
        app.state.effects = effects
        app.state.channel = channel
        app.state.store = store
        app.state.settings = settings
        app.state.stats = stats
        app.state.blocking = blocking
        app.state.machine = machine
        app.state.commands = CommandDispatcher(machine, stats)

        tasks = [
            asyncio.create_task(_tick_loop(machine, cfg.tick_interval_ms)),
            asyncio.create_task(_save_loop(machine, store, cfg.save_interval_s)),
        ]

        yield

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        effects.shutdown()
        save_snapshot(machine, store)

    return lifespan


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or default_config
    app = FastAPI(
        title="Focus Engine",
        description="Local pomodoro timer with phase-synchronised site blocking",
        version=VERSION,
        lifespan=_make_lifespan(cfg),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "null"],
        allow_origin_regex=r"(chrome|moz)-extension://.*",
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import blocking, commands, settings, stats, timer

    app.include_router(timer.router)
    app.include_router(settings.router)
    app.include_router(stats.router)
    app.include_router(blocking.router)
    app.include_router(commands.router)

    @app.get("/health")
    def health(request: Request):
        machine = getattr(request.app.state, "machine", None)
        return {
            "status": "ok",
            "version": VERSION,
            "running": bool(machine and machine.state.is_running),
        }

    return app


app = create_app()
