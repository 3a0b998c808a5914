"""
Central configuration for the focus engine process.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

VERSION = "1.0.0"

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8766

    # Timer loop
    tick_interval_ms: int = 1000             # one logical second per tick
    save_interval_s: int = 60                # snapshot cadence

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    db_name: str = "focus.db"
    settings_file: str = "settings.json"

    # Blocking
    rule_backend: str = "memory"             # "memory" | "hosts"
    hosts_path: str = "/etc/hosts"

    # Notifications
    desktop_notifications: bool = True

    # Logging
    log_level: str = "info"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def settings_path(self) -> Path:
        return self.data_dir / self.settings_file

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (FOCUS_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"FOCUS_{k.upper()}"
            if env_key in os.environ:
                raw = os.environ[env_key]
                if isinstance(getattr(cfg, k), bool):
                    setattr(cfg, k, raw.strip().lower() in ("1", "true", "yes", "on"))
                else:
                    setattr(cfg, k, type(getattr(cfg, k))(raw))
        cfg.data_dir = Path(cfg.data_dir)
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        return cfg


# Module-level singleton
config = Config.load()
