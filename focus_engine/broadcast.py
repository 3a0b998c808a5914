"""
Broadcast Channel — fan-out of state events to WebSocket subscribers.

Delivery is best-effort: no subscribers is fine, a slow subscriber loses its
oldest queued events.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

STATE_UPDATE = "stateUpdate"
NOTIFICATION = "notification"


class BroadcastChannel:

    def __init__(self, max_queue: int = 100):
        self._max_queue = max_queue
        self._subscribers: Set[asyncio.Queue] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()
        self.last_event: Optional[Dict[str, Any]] = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remember the loop that owns the subscriber queues."""
        self._loop = loop

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        with self._lock:
            self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        with self._lock:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        event = {"type": event_type, **payload}
        self.last_event = event
        with self._lock:
            queues = list(self._subscribers)
        if not queues:
            return
        loop = self._loop
        if loop is not None and loop.is_running() and not _on_loop(loop):
            loop.call_soon_threadsafe(self._deliver, queues, event)
        else:
            self._deliver(queues, event)

    def publish_state(self, state: Dict[str, Any]) -> None:
        self.publish(STATE_UPDATE, {"state": state})

    def publish_notification(self, payload: Dict[str, Any]) -> None:
        self.publish(NOTIFICATION, payload)

    @staticmethod
    def _deliver(queues, event: Dict[str, Any]) -> None:
        for queue in queues:
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug("dropping event for slow subscriber")


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
