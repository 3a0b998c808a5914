"""
Side-effect dispatcher — runs storage writes, rule sync and desktop
notifications off the tick path.

A single worker thread keeps submissions in FIFO order, so a rule removal
queued after an install always runs after it. Failures are logged only.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class EffectDispatcher:

    def __init__(self, inline: bool = False):
        self.inline = inline
        self._closed = False
        self._executor: Optional[ThreadPoolExecutor] = None
        if not inline:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="focus-effects"
            )

    def submit(self, fn: Callable[..., Any], *args: Any, label: str = "") -> None:
        """Fire-and-forget *fn(*args)*; exceptions are logged, never raised."""
        name = label or getattr(fn, "__qualname__", repr(fn))
        if self._closed:
            logger.warning("side effect %s dropped after shutdown", name)
            return
        if self._executor is None:
            try:
                fn(*args)
            except Exception:
                logger.exception("side effect %s failed", name)
            return
        future = self._executor.submit(fn, *args)
        future.add_done_callback(lambda f: _log_failure(f, name))

    def drain(self) -> None:
        """Block until every queued effect has run."""
        if self._executor is not None and not self._closed:
            self._executor.submit(lambda: None).result()

    def shutdown(self) -> None:
        """Run what is queued, then drop any later submission."""
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True)


def _log_failure(future: Future, name: str) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("side effect %s failed: %r", name, exc)
