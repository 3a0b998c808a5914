"""
Command dispatch — the single surface through which UI collaborators drive
the timer. Message shapes follow the extension runtime protocol:
{"type": "startTimer"}, {"type": "setTimerDuration", "minutes": 30, ...}.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from .actions.pomodoro import TimerStateMachine
from .stats.aggregator import StatsAggregator

logger = logging.getLogger(__name__)

OK = {"success": True}


class CommandDispatcher:

    def __init__(self, machine: TimerStateMachine, stats: StatsAggregator):
        self.machine = machine
        self.stats = stats
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "getState": self._get_state,
            "startTimer": self._start,
            "pauseTimer": self._pause,
            "resetTimer": self._reset,
            "updateSettings": self._update_settings,
            "setTimerDuration": self._set_duration,
            "getStats": self._get_stats,
            "resetDailyStats": self._reset_daily,
            "resetAllStats": self._reset_all,
        }

    @property
    def commands(self):
        return sorted(self._handlers)

    def dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        handler = self._handlers.get(message.get("type", ""))
        if handler is None:
            logger.debug("ignoring unknown command %r", message.get("type"))
            return {"success": False, "error": "unknown command"}
        return handler(message)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _get_state(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return self.machine.to_dict()

    def _start(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.machine.start()
        return dict(OK)

    def _pause(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.machine.toggle_pause()
        return dict(OK)

    def _reset(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.machine.reset()
        return dict(OK)

    def _update_settings(self, message: Dict[str, Any]) -> Dict[str, Any]:
        patch = message.get("settings")
        if isinstance(patch, dict):
            self.machine.apply_settings(patch)
        return dict(OK)

    def _set_duration(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.machine.set_duration(message.get("minutes"), message.get("mode"))
        return dict(OK)

    def _get_stats(self, message: Dict[str, Any]) -> Dict[str, Any]:
        d = self.stats.to_dict()
        d["completedCycles"] = self.machine.state.completed_focus_cycles
        return d

    def _reset_daily(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.stats.reset_today()
        return dict(OK)

    def _reset_all(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.stats.reset_all()
        self.machine.reset_cycles()
        return dict(OK)
