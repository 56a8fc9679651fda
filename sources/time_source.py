"""Clock data source.

Produces the localized date and time strings shown in the clock box.
Weekday names come from config.WEEKDAYS so the output doesn't depend on
the host's C locale.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from config import WEEKDAYS
from core.data_source import DataSource
from core.state import TimeSample, TimeTicked

logger = logging.getLogger(__name__)


def format_time_sample(
    now: datetime,
    locale: str = "de",
    date_format: str = "{weekday}, %d.%m.%Y",
    time_format: str = "%H:%M",
) -> TimeSample:
    weekdays = WEEKDAYS.get(locale, WEEKDAYS["en"])
    date_pattern = date_format.replace("{weekday}", weekdays[now.weekday()])
    return TimeSample(date=now.strftime(date_pattern), time=now.strftime(time_format))


class TimeSource(DataSource):
    """Publishes a TimeTicked message on every tick."""

    default_interval = 10.0

    def __init__(self, source_id: str, bus, config: Optional[Dict] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        super().__init__(source_id, bus, config, clock)
        self.locale = self.config.get("locale", "de")
        self.date_format = self.config.get("date_format", "{weekday}, %d.%m.%Y")
        self.time_format = self.config.get("time_format", "%H:%M")

    def sample(self, now: Optional[datetime] = None) -> TimeSample:
        return format_time_sample(
            now or self.now(), self.locale, self.date_format, self.time_format
        )

    def fetch(self) -> TimeTicked:
        now = self.now()
        return TimeTicked(sample=self.sample(now), at=now)
