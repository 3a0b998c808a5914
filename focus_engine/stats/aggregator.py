"""
Stats Aggregator — today's focused seconds plus the per-day progress history.

In-memory values are authoritative; writes to the FocusStore go through the
effect dispatcher and are never awaited.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from ..dispatch import EffectDispatcher
from .store import FocusStore

logger = logging.getLogger(__name__)

FOCUSED_TODAY_KEY = "focusedTodaySeconds"
LAST_FOCUS_DATE_KEY = "lastFocusDate"


def focus_level(seconds: int) -> int:
    """Heat-map bucket: 0 = nothing, 1 ≤ 3h, 2 ≤ 4.5h, 3 ≤ 6h, 4 above."""
    hours = seconds / 3600
    if hours == 0:
        return 0
    if hours <= 3:
        return 1
    if hours <= 4.5:
        return 2
    if hours <= 6:
        return 3
    return 4


class StatsAggregator:

    def __init__(
        self,
        store: Optional[FocusStore] = None,
        dispatcher: Optional[EffectDispatcher] = None,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._dispatcher = dispatcher or EffectDispatcher(inline=True)
        self._today = today
        self.history: Dict[str, int] = {}
        self.focused_today_seconds = 0
        self.last_focus_date: Optional[str] = None

    def load(self) -> None:
        """Read persisted values; storage errors leave the empty defaults."""
        if self._store is None:
            return
        try:
            self.history = self._store.load_history()
            self.focused_today_seconds = int(self._store.get_value(FOCUSED_TODAY_KEY, 0) or 0)
            self.last_focus_date = self._store.get_value(LAST_FOCUS_DATE_KEY)
        except (sqlite3.Error, TypeError, ValueError):
            logger.exception("failed to load focus stats; starting empty")

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_focused_seconds(self, day: date, seconds: int) -> None:
        if seconds <= 0:
            return
        self.rollover_if_needed()
        key = day.isoformat()
        self.history[key] = self.history.get(key, 0) + seconds
        if key == self.last_focus_date:
            self.focused_today_seconds += seconds
        self._persist_day(key, self.history[key])
        self._persist_today()

    def rollover_if_needed(self) -> bool:
        """Reset the today counter on the first call of a new calendar day."""
        today = self._today().isoformat()
        if self.last_focus_date == today:
            return False
        logger.info("new day %s; resetting today's focus counter", today)
        self.focused_today_seconds = 0
        self.last_focus_date = today
        self._persist_today()
        return True

    def reset_today(self) -> None:
        self.focused_today_seconds = 0
        self.last_focus_date = self._today().isoformat()
        self._persist_today()

    def reset_all(self) -> None:
        self.history = {}
        self.reset_today()
        if self._store is not None:
            self._dispatcher.submit(self._store.clear_history, label="clear_history")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def today_seconds(self) -> int:
        self.rollover_if_needed()
        return self.focused_today_seconds

    def history_range(self, days: Optional[int] = None) -> List[dict]:
        """Entries oldest → newest; with *days*, every day of the window is listed."""
        if days is None:
            return [
                {"date": d, "seconds": s, "level": focus_level(s)}
                for d, s in sorted(self.history.items())
            ]
        end = self._today()
        result = []
        for offset in range(days - 1, -1, -1):
            key = (end - timedelta(days=offset)).isoformat()
            seconds = self.history.get(key, 0)
            result.append({"date": key, "seconds": seconds, "level": focus_level(seconds)})
        return result

    def to_dict(self) -> dict:
        return {
            "focusedTodaySeconds": self.today_seconds(),
            "lastFocusDate": self.last_focus_date,
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _persist_day(self, key: str, seconds: int) -> None:
        if self._store is not None:
            self._dispatcher.submit(self._store.write_day, key, seconds, label="write_day")

    def _persist_today(self) -> None:
        if self._store is None:
            return
        self._dispatcher.submit(
            self._write_today, self.focused_today_seconds, self.last_focus_date,
            label="write_today",
        )

    def _write_today(self, seconds: int, day: Optional[str]) -> None:
        self._store.set_value(FOCUSED_TODAY_KEY, seconds)
        self._store.set_value(LAST_FOCUS_DATE_KEY, day)
