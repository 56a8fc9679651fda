"""Repeating refresh timers guarded by a liveness flag.

Each RefreshTimer runs its action once immediately and then every
interval seconds in a background thread. Once the shared Liveness is
killed, no timer runs its action again or re-arms itself, and actions
already in flight check the flag before publishing anything.

Failures never escape a timer: the error is logged and the next tick
tries again at the same interval.
"""

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class Liveness:
    """Boolean flag shared by everything that may update a mounted view."""

    def __init__(self):
        self._dead = threading.Event()

    @property
    def alive(self) -> bool:
        return not self._dead.is_set()

    def kill(self):
        self._dead.set()


class RefreshTimer:
    """Invoke an action now and on every interval while alive."""

    def __init__(
        self,
        name: str,
        action: Callable[[], None],
        interval: float,
        liveness: Liveness,
    ):
        if interval <= 0:
            raise ValueError(f"interval for {name} must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self._action = action
        self._liveness = liveness
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0
        self.failures = 0

    def fire(self) -> bool:
        """Run the action once. Returns False if skipped or failed."""
        if not self._liveness.alive:
            return False
        self.runs += 1
        try:
            self._action()
            return True
        except Exception as exc:
            self.failures += 1
            logger.error("Refresh %s failed: %s", self.name, exc)
            return False

    def start(self, immediate: bool = True):
        """Fire once on the calling thread, then start the repeating thread."""
        if self._thread and self._thread.is_alive():
            return
        self._cancel.clear()
        if immediate:
            self.fire()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"timer-{self.name}"
        )
        self._thread.start()
        logger.info("Timer %s started (%.1fs interval)", self.name, self.interval)

    def _run(self):
        while not self._cancel.wait(self.interval):
            if not self._liveness.alive:
                break
            self.fire()
        logger.debug("Timer %s stopped", self.name)

    def cancel(self):
        self._cancel.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())


class RefreshScheduler:
    """Owns the independent refresh timers of one mounted dashboard."""

    def __init__(self, liveness: Optional[Liveness] = None):
        self.liveness = liveness or Liveness()
        self._timers: Dict[str, RefreshTimer] = {}

    def add(self, name: str, action: Callable[[], None], interval: float) -> RefreshTimer:
        if name in self._timers:
            raise ValueError(f"timer {name} already registered")
        timer = RefreshTimer(name, action, interval, self.liveness)
        self._timers[name] = timer
        return timer

    def get(self, name: str) -> Optional[RefreshTimer]:
        return self._timers.get(name)

    @property
    def timers(self) -> Dict[str, RefreshTimer]:
        return dict(self._timers)

    def start(self, immediate: bool = True):
        for timer in self._timers.values():
            timer.start(immediate=immediate)

    def teardown(self, timeout: float = 2.0):
        """Kill the liveness flag, then cancel and join every timer."""
        self.liveness.kill()
        for timer in self._timers.values():
            timer.cancel()
        for timer in self._timers.values():
            timer.join(timeout)
        logger.info("Scheduler stopped (%d timers)", len(self._timers))
