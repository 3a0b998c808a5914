"""
Focus Store — SQLite persistence for the per-day progress history, the
today counter and the timer snapshot.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "timerState"
SNAPSHOT_FIELDS = ("isRunning", "isPaused", "mode", "timeLeft", "completedCycles")


class FocusStore:
    """Thread-safe SQLite-backed store; one short-lived connection per call."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._init_db()

    # ------------------------------------------------------------------
    # Progress history
    # ------------------------------------------------------------------

    def write_day(self, day: str, seconds: int) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO progress_history (day, seconds) VALUES (?, ?)
                ON CONFLICT(day) DO UPDATE SET seconds = excluded.seconds
                """,
                (day, int(seconds)),
            )

    def load_history(self) -> Dict[str, int]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT day, seconds FROM progress_history ORDER BY day"
            ).fetchall()
        return {day: int(seconds) for day, seconds in rows}

    def clear_history(self) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM progress_history")

    # ------------------------------------------------------------------
    # Key/value records
    # ------------------------------------------------------------------

    def set_value(self, key: str, value: Any) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO kv (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, json.dumps(value)),
            )

    def get_value(self, key: str, default: Any = None) -> Any:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning("discarding malformed %s record", key)
            return default

    # ------------------------------------------------------------------
    # Timer snapshot
    # ------------------------------------------------------------------

    def save_snapshot(self, state: Dict[str, Any]) -> None:
        """Persist only the snapshot fields; settings are stored separately."""
        self.set_value(SNAPSHOT_KEY, {k: state[k] for k in SNAPSHOT_FIELDS if k in state})

    def load_snapshot(self) -> Optional[Dict[str, Any]]:
        snap = self.get_value(SNAPSHOT_KEY)
        if not isinstance(snap, dict):
            return None
        return snap

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _init_db(self) -> None:
        """Create the tables; an unusable file is logged and later calls fail."""
        try:
            with self._conn() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS progress_history (
                        day      TEXT    PRIMARY KEY,
                        seconds  INTEGER NOT NULL DEFAULT 0
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        key    TEXT PRIMARY KEY,
                        value  TEXT NOT NULL
                    )
                    """
                )
        except sqlite3.Error:
            self.available = False
            logger.exception("focus store %s is unusable; running without persistence", self.db_path)
        else:
            self.available = True

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()
