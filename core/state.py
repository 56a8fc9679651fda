"""Display state and the messages that change it.

Data sources never write display fields directly. They publish one of the
update messages below, and the dashboard folds each message into a new
immutable DisplayState with reduce(). Only the dashboard holds the current
state, so every write happens in one place.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeSample:
    date: str
    time: str


@dataclass(frozen=True)
class SensorReading:
    value: float
    units: str = ""


@dataclass(frozen=True)
class ForecastDay:
    """One daily forecast entry, normalised across providers.

    humidity and precip_probability are fractions in [0, 1].
    moon_phase is a lunation fraction (0 = new, 0.5 = full) or None.
    """

    timestamp: int
    icon: str
    temperature_min: float
    temperature_max: float
    humidity: Optional[float] = None
    precip_probability: Optional[float] = None
    moon_phase: Optional[float] = None
    description: str = ""


@dataclass(frozen=True)
class ForecastDocument:
    days: Tuple[ForecastDay, ...]
    location: str = ""


def _empty_readings() -> Mapping[str, SensorReading]:
    return MappingProxyType({})


def _empty_updated() -> Mapping[str, datetime]:
    return MappingProxyType({})


@dataclass(frozen=True)
class DisplayState:
    """Last known good values for everything on screen."""

    time: Optional[TimeSample] = None
    readings: Mapping[str, SensorReading] = field(default_factory=_empty_readings)
    forecast: Optional[ForecastDocument] = None
    updated: Mapping[str, datetime] = field(default_factory=_empty_updated)

    def last_updated(self, category: str) -> Optional[datetime]:
        return self.updated.get(category)


# ---------------------------------------------------------------------------
# Update messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimeTicked:
    sample: TimeSample
    at: datetime
    category = "time"


@dataclass(frozen=True)
class ReadingsUpdated:
    """New values for some or all slots. Slots not named are left alone."""

    readings: Mapping[str, SensorReading]
    at: datetime
    category = "sensors"


@dataclass(frozen=True)
class ForecastReplaced:
    document: ForecastDocument
    at: datetime
    category = "forecast"


def _stamp(state: DisplayState, category: str, at: datetime) -> Mapping[str, datetime]:
    updated = dict(state.updated)
    updated[category] = at
    return MappingProxyType(updated)


def reduce(state: DisplayState, message) -> DisplayState:
    """Return the state that results from applying message to state."""
    if isinstance(message, TimeTicked):
        return replace(
            state,
            time=message.sample,
            updated=_stamp(state, message.category, message.at),
        )

    if isinstance(message, ReadingsUpdated):
        readings = dict(state.readings)
        readings.update(message.readings)
        return replace(
            state,
            readings=MappingProxyType(readings),
            updated=_stamp(state, message.category, message.at),
        )

    if isinstance(message, ForecastReplaced):
        # Forecasts are replaced wholesale, never merged
        return replace(
            state,
            forecast=message.document,
            updated=_stamp(state, message.category, message.at),
        )

    logger.warning("Ignoring unknown state update: %r", message)
    return state
