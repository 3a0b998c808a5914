"""
Startup recovery and periodic snapshotting.

A restart resumes from the last saved countdown; time spent while the
process was down is not reconciled.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from .actions.pomodoro import Phase, TimerState, TimerStateMachine
from .settings import SettingsStore
from .stats.aggregator import StatsAggregator
from .stats.store import FocusStore

logger = logging.getLogger(__name__)


def load_snapshot(store: FocusStore) -> Optional[dict]:
    try:
        return store.load_snapshot()
    except sqlite3.Error:
        logger.exception("failed to read timer snapshot")
        return None


def save_snapshot(machine: TimerStateMachine, store: FocusStore) -> bool:
    try:
        store.save_snapshot(machine.snapshot())
    except sqlite3.Error:
        logger.exception("failed to save timer snapshot")
        return False
    return True


def recover(
    machine: TimerStateMachine,
    settings: SettingsStore,
    stats: StatsAggregator,
    store: FocusStore,
) -> bool:
    """
    Snapshot → settings → stats rollover → blocking resync.
    Returns True when a snapshot was restored.
    """
    snap = load_snapshot(store)
    settings.load()
    if snap is not None:
        machine.restore(snap)
        logger.info(
            "restored timer: %s, %ds left, running=%s",
            machine.state.phase.value, machine.state.time_left_seconds,
            machine.state.is_running,
        )
    else:
        machine.state = TimerState(
            phase=Phase.FOCUS, time_left_seconds=machine.phase_seconds(Phase.FOCUS)
        )
    stats.load()
    stats.rollover_if_needed()
    machine.resync_blocking()
    return snap is not None
