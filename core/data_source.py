"""Data source abstraction for the dashboard.

A DataSource fetches data (the clock, the hub, a weather API) and
publishes a state-update message to the EventBus. When it runs is up to
the RefreshScheduler; the dashboard doesn't care where data comes from,
it just folds whatever arrives on the bus into its state.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from core.event_bus import EventBus
from core.scheduler import Liveness

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """Base class for all data providers.

    Subclasses implement fetch(), which runs on a timer thread and
    returns a state-update message. refresh() publishes it under
    self.topic unless the view was torn down while fetch() was running.

    Messages are stamped with now(): the injected clock, or the wall
    clock in config["timezone"] (local time when unset).
    """

    default_interval = 60.0

    def __init__(self, source_id: str, bus: EventBus, config: Optional[Dict] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.source_id = source_id
        self.bus = bus
        self.config = config or {}
        self.topic = source_id  # subscribers use this to listen
        self.interval = float(self.config.get("interval", self.default_interval))
        tz_name = self.config.get("timezone")
        self.tz: Optional[tzinfo] = ZoneInfo(tz_name) if tz_name else None
        self._clock = clock or (lambda: datetime.now(self.tz))

    def now(self) -> datetime:
        return self._clock()

    def refresh(self, liveness: Liveness) -> bool:
        """Fetch once and publish. Errors propagate to the caller."""
        if not liveness.alive:
            return False
        data = self.fetch()
        if data is None:
            return False
        if not liveness.alive:
            logger.debug("DataSource %s: dropping result after teardown", self.source_id)
            return False
        self.bus.publish(self.topic, data)
        return True

    @abstractmethod
    def fetch(self) -> Optional[Any]:
        """Fetch data. Runs in a timer thread.

        Returns:
            A state-update message, or None to skip this cycle.
        """
        ...

    def close(self):
        """Release resources. Override if needed."""
