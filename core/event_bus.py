"""Thread-safe event bus for the dashboard.

Background threads (timers, hub watchers) push state updates via publish().
A single owner drains the queue and dispatches to subscribers, so every
subscriber runs on the owner's thread and never races another writer.
"""

import logging
import threading
from queue import Queue, Empty
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventBus:
    """Message queue bridging background threads to the state owner."""

    def __init__(self):
        self._queue = Queue()
        self._subscribers: Dict[str, List[Callable]] = {}
        self._lock = threading.Lock()

    def publish(self, topic: str, payload: Any):
        """Push data from any thread. Thread-safe."""
        self._queue.put((topic, payload))

    def subscribe(self, topic: str, callback: Callable) -> Callable[[], None]:
        """Register a callback for a topic. Returns a disposer."""
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

        def dispose():
            self.unsubscribe(topic, callback)

        return dispose

    def unsubscribe(self, topic: str, callback: Callable):
        """Remove a callback."""
        with self._lock:
            if topic in self._subscribers:
                self._subscribers[topic] = [
                    cb for cb in self._subscribers[topic] if cb is not callback
                ]

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, limit: int = 50, timeout: float = 0.0) -> int:
        """Dispatch up to limit queued messages on the calling thread.

        Blocks up to timeout seconds for the first message. Returns the
        number of messages dispatched.
        """
        handled = 0
        try:
            while handled < limit:
                if handled == 0 and timeout > 0:
                    topic, payload = self._queue.get(timeout=timeout)
                else:
                    topic, payload = self._queue.get_nowait()
                handled += 1
                self._dispatch(topic, payload)
        except Empty:
            pass
        return handled

    def clear(self) -> int:
        """Drop everything still queued. Returns the number dropped."""
        dropped = 0
        try:
            while True:
                self._queue.get_nowait()
                dropped += 1
        except Empty:
            pass
        return dropped

    def _dispatch(self, topic: str, payload: Any):
        with self._lock:
            callbacks = list(self._subscribers.get(topic, []))
        for cb in callbacks:
            try:
                cb(payload)
            except Exception as exc:
                logger.error("EventBus callback error [%s]: %s", topic, exc)
