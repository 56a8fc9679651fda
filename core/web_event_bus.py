"""Fan-out of dashboard changes to web clients.

The dashboard calls publish() after every applied update. Each connected
browser holds an SSE generator from sse_stream() with its own bounded
queue; a client that stops reading is dropped once its queue fills up.
"""

import logging
import threading
from queue import Queue, Empty, Full
from typing import Any, List

logger = logging.getLogger(__name__)


class WebEventBus:
    """Event bus for Flask/web mode."""

    def __init__(self, keepalive: float = 30.0, queue_size: int = 100):
        self._lock = threading.Lock()
        self._sse_clients: List[Queue] = []
        self._keepalive = keepalive
        self._queue_size = queue_size

    def publish(self, topic: str, payload: Any):
        """Push data from any thread. Thread-safe."""
        with self._lock:
            clients = list(self._sse_clients)

        # Notify SSE clients (non-blocking)
        dead = []
        for q in clients:
            try:
                q.put_nowait((topic, payload))
            except Full:
                dead.append(q)
        if dead:
            with self._lock:
                for q in dead:
                    if q in self._sse_clients:
                        self._sse_clients.remove(q)
            logger.debug("Dropped %d stalled SSE clients", len(dead))

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._sse_clients)

    def sse_stream(self):
        """Generator for SSE clients. Yields (topic, payload) tuples.

        Yields ("keepalive", None) when nothing happened for a while.
        """
        q = Queue(maxsize=self._queue_size)
        with self._lock:
            self._sse_clients.append(q)
        try:
            while True:
                try:
                    yield q.get(timeout=self._keepalive)
                except Empty:
                    yield "keepalive", None
        finally:
            with self._lock:
                if q in self._sse_clients:
                    self._sse_clients.remove(q)
