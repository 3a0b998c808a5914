"""Tests for snapshotting and restart recovery."""

from __future__ import annotations

import json
import sqlite3
from datetime import date

import pytest

from focus_engine.actions.blocking import BlockingRuleSynchronizer
from focus_engine.actions.pomodoro import Phase, TimerStateMachine
from focus_engine.recovery import recover, save_snapshot
from focus_engine.settings import SettingsStore
from focus_engine.stats.aggregator import StatsAggregator
from focus_engine.stats.store import FocusStore


class Engine:
    """One 'process lifetime' worth of components over the same data dir."""

    def __init__(self, data_dir, clock):
        self.store = FocusStore(data_dir / "focus.db")
        self.settings = SettingsStore(data_dir / "settings.json")
        self.stats = StatsAggregator(self.store, today=clock)
        self.blocking = BlockingRuleSynchronizer()
        self.machine = TimerStateMachine(self.settings, self.blocking, self.stats, clock=clock)

    def recover(self) -> bool:
        return recover(self.machine, self.settings, self.stats, self.store)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path


def test_first_run_has_no_snapshot(data_dir, clock):
    e = Engine(data_dir, clock)
    assert e.recover() is False
    assert e.machine.state.phase is Phase.FOCUS
    assert not e.machine.state.is_running


def test_restart_resumes_from_saved_time(data_dir, clock):
    first = Engine(data_dir, clock)
    first.recover()
    first.machine.start()
    for _ in range(100):
        first.machine.tick()
    assert save_snapshot(first.machine, first.store)
    for _ in range(30):
        first.machine.tick()     # lost: never saved

    second = Engine(data_dir, clock)
    assert second.recover() is True
    assert second.machine.state.time_left_seconds == 1400
    assert second.machine.state.is_running
    assert [r.host for r in second.blocking.active_rules()] == second.settings["blockedSites"]


def test_restart_in_break_has_no_rules(data_dir, clock):
    first = Engine(data_dir, clock)
    first.recover()
    first.machine.restore({"isRunning": True, "mode": "longBreak", "timeLeft": 300, "completedCycles": 4})
    save_snapshot(first.machine, first.store)

    second = Engine(data_dir, clock)
    second.blocking.install(["stale.com"])
    second.recover()
    assert second.machine.state.phase is Phase.LONG_BREAK
    assert second.machine.state.completed_focus_cycles == 4
    assert second.blocking.active_rules() == []


def test_settings_loaded_from_their_own_record(data_dir, clock):
    (data_dir / "settings.json").write_text(json.dumps({"focusMinutes": 50}))
    e = Engine(data_dir, clock)
    e.recover()
    assert e.machine.state.time_left_seconds == 50 * 60


def test_recovery_rolls_over_the_day(data_dir, clock):
    first = Engine(data_dir, clock)
    first.recover()
    first.stats.record_focused_seconds(clock.day, 1500)

    clock.day = date(2024, 3, 15)
    second = Engine(data_dir, clock)
    second.recover()
    assert second.stats.focused_today_seconds == 0
    assert second.stats.last_focus_date == "2024-03-15"
    assert second.stats.history["2024-03-14"] == 1500


def test_snapshot_write_failure_is_logged(data_dir, clock, monkeypatch, caplog):
    e = Engine(data_dir, clock)

    def boom(state):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(e.store, "save_snapshot", boom)
    assert save_snapshot(e.machine, e.store) is False
    assert "failed to save timer snapshot" in caplog.text


def test_malformed_snapshot_treated_as_missing(data_dir, clock):
    e = Engine(data_dir, clock)
    e.store.set_value("timerState", "garbage")
    assert e.recover() is False
