"""
Pomodoro Timer — the focus / short-break / long-break state machine.

tick() is driven by an external ~1 Hz loop and counts one logical second per
call; it never looks at the wall clock. Blocking-rule sync and storage
writes are queued on the effect dispatcher and never awaited here.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..dispatch import EffectDispatcher
from ..settings import SettingsStore, clamp_int
from ..stats.aggregator import StatsAggregator
from .blocking import BlockingRuleSynchronizer
from .notifications import APP_TITLE, NotificationController, phase_complete_message

logger = logging.getLogger(__name__)

DURATION_KEYS = {
    "focus": "focusMinutes",
    "shortBreak": "shortBreakMinutes",
    "longBreak": "longBreakMinutes",
}


class Phase(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @classmethod
    def parse(cls, value: Any) -> Optional["Phase"]:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class TimerState:
    phase: Phase = Phase.FOCUS
    is_running: bool = False
    is_paused: bool = False
    time_left_seconds: int = 25 * 60
    completed_focus_cycles: int = 0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "isPaused": self.is_paused,
            "mode": self.phase.value,
            "timeLeft": self.time_left_seconds,
            "completedCycles": self.completed_focus_cycles,
        }


class TimerStateMachine:

    def __init__(
        self,
        settings: SettingsStore,
        blocking: BlockingRuleSynchronizer,
        stats: StatsAggregator,
        notifier: Optional[NotificationController] = None,
        dispatcher: Optional[EffectDispatcher] = None,
        on_change: Optional[Callable[[dict], None]] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._settings = settings
        self._blocking = blocking
        self._stats = stats
        self._notifier = notifier
        self._dispatcher = dispatcher or EffectDispatcher(inline=True)
        self._on_change = on_change
        self._clock = clock
        self._lock = threading.RLock()
        self.state = TimerState(time_left_seconds=self.phase_seconds(Phase.FOCUS))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            s = self.state
            if s.is_running and not s.is_paused:
                return
            s.is_running = True
            s.is_paused = False
            if s.phase is Phase.FOCUS:
                self._request_install()
            self._emit()

    def toggle_pause(self) -> None:
        with self._lock:
            if not self.state.is_running:
                return
            self.state.is_paused = not self.state.is_paused
            self._emit()

    def reset(self) -> None:
        with self._lock:
            s = self.state
            s.is_running = False
            s.is_paused = False
            s.phase = Phase.FOCUS
            s.time_left_seconds = self.phase_seconds(Phase.FOCUS)
            self._request_remove()
            self._emit()

    def set_duration(self, minutes: Any, phase: Any = None) -> bool:
        """Manual pre-session adjustment; ignored while a session is running."""
        with self._lock:
            if self.state.is_running:
                return False
            self.state.time_left_seconds = clamp_int(minutes, 1, 120, 25) * 60
            new_phase = Phase.parse(phase) if phase else None
            if new_phase is not None:
                self.state.phase = new_phase
            self._emit()
            return True

    def apply_settings(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Merge and persist; the countdown in progress is left alone."""
        with self._lock:
            old_sites = self._settings["blockedSites"]
            updated = self._settings.update(patch)
            if self.blocking_active and updated["blockedSites"] != old_sites:
                self._request_install()
            self._emit()
            return updated

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """Advance one logical second. Returns False when nothing ticked."""
        with self._lock:
            s = self.state
            if not s.is_running or s.is_paused:
                return False
            s.time_left_seconds -= 1
            if s.time_left_seconds <= 0:
                self.complete_phase()
            self._emit()
            return True

    def complete_phase(self) -> Phase:
        """Move to the next phase; callers hold the lock."""
        s = self.state
        cfg = self._settings.get()
        finished = s.phase

        if cfg["enableNotifications"] and self._notifier is not None:
            self._notifier.notify(
                APP_TITLE, phase_complete_message(finished.value), chime=cfg["enableChime"]
            )

        if finished is Phase.FOCUS:
            s.completed_focus_cycles += 1
            self._stats.record_focused_seconds(self._clock(), cfg["focusMinutes"] * 60)
            if s.completed_focus_cycles % cfg["cyclesBeforeLongBreak"] == 0:
                s.phase = Phase.LONG_BREAK
            else:
                s.phase = Phase.SHORT_BREAK
            self._request_remove()
        else:
            s.phase = Phase.FOCUS
            self._request_install()

        s.time_left_seconds = self.phase_seconds(s.phase)
        logger.info(
            "%s complete -> %s (%d focus cycles)",
            finished.value, s.phase.value, s.completed_focus_cycles,
        )
        return s.phase

    # ------------------------------------------------------------------
    # Persistence hooks
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.state.snapshot()

    def restore(self, snap: Dict[str, Any]) -> None:
        """Load a saved snapshot, repairing anything out of range."""
        with self._lock:
            phase = Phase.parse(snap.get("mode")) or Phase.FOCUS
            running = bool(snap.get("isRunning", False))
            time_left = clamp_int(snap.get("timeLeft"), 0, 24 * 3600, 0)
            if time_left == 0:
                time_left = self.phase_seconds(phase)
            self.state = TimerState(
                phase=phase,
                is_running=running,
                is_paused=running and bool(snap.get("isPaused", False)),
                time_left_seconds=time_left,
                completed_focus_cycles=clamp_int(snap.get("completedCycles"), 0, 10 ** 9, 0),
            )

    def resync_blocking(self) -> None:
        """Reissue the rule set so it matches the current phase."""
        with self._lock:
            if self.blocking_active:
                self._request_install()
            else:
                self._request_remove()

    def reset_cycles(self) -> None:
        with self._lock:
            self.state.completed_focus_cycles = 0
            self._emit()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def blocking_active(self) -> bool:
        return self.state.is_running and self.state.phase is Phase.FOCUS

    def phase_seconds(self, phase: Phase) -> int:
        return self._settings[DURATION_KEYS[phase.value]] * 60

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            d = self.state.snapshot()
            d["settings"] = self._settings.get()
            return d

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request_install(self) -> None:
        sites = self._settings["blockedSites"]
        self._dispatcher.submit(self._blocking.install, list(sites), label="install_rules")

    def _request_remove(self) -> None:
        sites = self._settings["blockedSites"]
        self._dispatcher.submit(self._blocking.remove, list(sites), label="remove_rules")

    def _emit(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.to_dict())
        except Exception:
            logger.exception("state broadcast failed")
