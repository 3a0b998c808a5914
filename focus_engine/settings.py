"""
User-tunable timer settings — persisted to data/settings.json.

A SettingsStore is owned by the app and handed to the state machine and the
routers. get() returns a copy; update(patch) merges, clamps and saves.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "focusMinutes": 25,
    "shortBreakMinutes": 5,
    "longBreakMinutes": 15,
    "cyclesBeforeLongBreak": 4,
    "enableNotifications": True,
    "enableChime": True,
    "blockedSites": ["facebook.com", "instagram.com", "reddit.com", "x.com"],
}

# key → (min, max)
RANGES: Dict[str, tuple] = {
    "focusMinutes": (1, 120),
    "shortBreakMinutes": (1, 60),
    "longBreakMinutes": (1, 120),
    "cyclesBeforeLongBreak": (1, 10),
}


def clamp_int(value: Any, low: int, high: int, fallback: int) -> int:
    """Coerce *value* to an int inside [low, high]; non-numeric → *fallback*."""
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return fallback
    return max(low, min(high, number))


def _coerce_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    return fallback


def normalize_host(raw: str) -> str:
    """'https://www.Reddit.com/r/x' → 'reddit.com'."""
    host = raw.strip().lower()
    if not host:
        return ""
    if "://" in host:
        host = urlsplit(host).netloc
    host = host.split("/", 1)[0].split("?", 1)[0]
    host = host.rsplit("@", 1)[-1].split(":", 1)[0]
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def normalize_sites(sites: Iterable[Any]) -> List[str]:
    """Normalize hostnames, drop empties, de-duplicate keeping first occurrence."""
    seen: List[str] = []
    for site in sites:
        if not isinstance(site, str):
            continue
        host = normalize_host(site)
        if host and host not in seen:
            seen.append(host)
    return seen


def sanitize(patch: Dict[str, Any], base: Dict[str, Any]) -> Dict[str, Any]:
    """Return the known keys of *patch* validated against *base* values."""
    clean: Dict[str, Any] = {}
    for k, v in patch.items():
        if k not in DEFAULTS:
            continue
        if k in RANGES:
            low, high = RANGES[k]
            clean[k] = clamp_int(v, low, high, base[k])
        elif k == "blockedSites":
            if isinstance(v, str):
                v = v.splitlines()
            if isinstance(v, (list, tuple)):
                clean[k] = normalize_sites(v)
        else:
            clean[k] = _coerce_bool(v, base[k])
    return clean


class SettingsStore:
    """JSON-file backed settings. Unknown keys ignored, numbers clamped."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._current: Dict[str, Any] = _fresh_defaults()

    def load(self) -> Dict[str, Any]:
        """(Re)read the file; missing or malformed files fall back to defaults."""
        self._current = _fresh_defaults()
        if self.path is None or not self.path.exists():
            return self.get()
        try:
            saved = json.loads(self.path.read_text())
        except (OSError, ValueError):
            logger.warning("settings file %s unreadable, using defaults", self.path)
            return self.get()
        if isinstance(saved, dict):
            self._current.update(sanitize(saved, self._current))
        return self.get()

    def get(self) -> Dict[str, Any]:
        """Return a copy of the current settings."""
        current = dict(self._current)
        current["blockedSites"] = list(current["blockedSites"])
        return current

    def __getitem__(self, key: str) -> Any:
        return self._current[key]

    def update(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Apply *patch*, persist to disk, return full settings."""
        self._current.update(sanitize(patch, self._current))
        self.save()
        return self.get()

    def save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._current, indent=2))
        except OSError:
            logger.exception("failed to write settings to %s", self.path)


def _fresh_defaults() -> Dict[str, Any]:
    d = dict(DEFAULTS)
    d["blockedSites"] = list(DEFAULTS["blockedSites"])
    return d
