"""Pure view layer: DisplayState -> view model.

Nothing in here performs I/O or reads the clock. The web layer renders
the returned dict into HTML (templates/index.html) or serves it as JSON.

Formatting rules:
    temperatures            one decimal place, ties away from zero
    humidity, precipitation fraction x 100, no decimals
    sensor readings         per-slot decimals
    moon phase              snapped to the nearest 1/16 for the icon
"""

import math
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional, Sequence

from core.icons import IconMapping
from core.settings import DashboardConfig
from core.state import DisplayState, ForecastDay, SensorReading


def to_fixed(value: float, decimals: int) -> str:
    """Fixed-point string, exact ties rounded away from zero (12.25 -> 12.3)."""
    quantum = Decimal(1).scaleb(-decimals)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_temperature(value: Optional[float]) -> str:
    if value is None:
        return ""
    return to_fixed(value, 1)


def format_percentage(fraction: Optional[float]) -> str:
    if fraction is None:
        return ""
    return to_fixed(fraction * 100, 0)


def format_reading(reading: Optional[SensorReading], decimals: int = 1) -> str:
    if reading is None:
        return ""
    return to_fixed(reading.value, decimals)


def format_stamp(stamp: Optional[datetime], fmt: str) -> str:
    if stamp is None:
        return ""
    return stamp.strftime(fmt)


def snap_moon_phase(phase: float) -> float:
    """Nearest 1/16 of a lunation, halves rounding up."""
    return math.floor(phase * 16 + 0.5) / 16


def forecast_window(days: Sequence[ForecastDay], offset: int = 0,
                    size: int = 5) -> Sequence[ForecastDay]:
    return tuple(days[offset:offset + size])


def _moon(phase: Optional[float], names: Optional[IconMapping]) -> Optional[Dict[str, Any]]:
    if phase is None:
        return None
    snapped = snap_moon_phase(phase)
    return {
        "phase": snapped,
        "icon": f"moon_{snapped:g}",
        "name": names.get(snapped, "") if names else "",
    }


def render_forecast_day(day: ForecastDay, label: str,
                        icons: Optional[IconMapping],
                        moon_names: Optional[IconMapping]) -> Dict[str, Any]:
    return {
        "timestamp": day.timestamp,
        "label": label,
        "icon": icons.get(day.icon) if icons else day.icon,
        "icon_code": day.icon,
        "description": day.description,
        "temperature_max": format_temperature(day.temperature_max),
        "temperature_min": format_temperature(day.temperature_min),
        "humidity": format_percentage(day.humidity),
        "precip_probability": format_percentage(day.precip_probability),
        "moon": _moon(day.moon_phase, moon_names),
    }


def render_dashboard(
    state: DisplayState,
    config: DashboardConfig,
    icons: Optional[IconMapping] = None,
    moon_names: Optional[IconMapping] = None,
    tz: Optional[tzinfo] = None,
) -> Dict[str, Any]:
    """Build the complete view model for one frame."""
    stamp_fmt = config.clock.last_updated_format

    clock = {
        "time": state.time.time if state.time else "",
        "date": state.time.date if state.time else "",
        "last_updated": format_stamp(state.last_updated("time"), stamp_fmt),
    }

    groups: Dict[str, list] = {}
    for slot in config.hub.slots:
        reading = state.readings.get(slot.slot)
        groups.setdefault(slot.group, []).append({
            "slot": slot.slot,
            "label": slot.label,
            "value": format_reading(reading, slot.decimals),
            "units": reading.units if reading else "",
        })
    climate = {
        "groups": groups,
        "last_updated": format_stamp(state.last_updated("sensors"), stamp_fmt),
    }

    fc = config.forecast
    days = []
    location = ""
    if state.forecast is not None:
        location = state.forecast.location
        window = forecast_window(state.forecast.days, fc.offset, fc.days_shown)
        for index, day in enumerate(window):
            if index == 0 and fc.today_label:
                label = fc.today_label
            else:
                label = datetime.fromtimestamp(day.timestamp, tz).strftime(fc.date_format)
            days.append(render_forecast_day(day, label, icons, moon_names))
    forecast = {
        "days": days,
        "location": location,
        "last_updated": format_stamp(state.last_updated("forecast"), stamp_fmt),
    }

    return {"clock": clock, "climate": climate, "forecast": forecast}
