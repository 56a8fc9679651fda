"""Configuration loading for the dashboard.

Settings are layered, later layers winning:

    config.py defaults -> variant preset -> dashboard.yaml -> environment

The result is a tree of frozen dataclasses so nothing downstream can
change configuration after start-up.

dashboard.yaml example:

    variant: insights
    hub:
      url: "http://192.168.1.20"
      sensors:
        - slot: indoor_temperature
          device: "fad84db7-..."
          capability: measure_temperature
          label: Temperature
          group: indoor
          decimals: 1
    forecast:
      latitude: 53.56
      longitude: 9.96
      offset: 0
      today_label: Heute
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

import config as defaults

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent

HUB_MODES = ("live", "insights")


class ConfigError(Exception):
    """Raised when the dashboard configuration is unusable."""


@dataclass(frozen=True)
class SensorSlot:
    slot: str
    device: str
    capability: str
    label: str
    group: str = "indoor"
    decimals: int = 1
    units: str = ""  # used when the hub reports none


@dataclass(frozen=True)
class HubConfig:
    mode: str
    url: str
    token: str
    interval: float
    timeout: float
    watch_interval: float
    max_workers: int
    slots: Tuple[SensorSlot, ...]


@dataclass(frozen=True)
class ForecastConfig:
    provider: str
    api_key: str
    base_url: str
    latitude: float
    longitude: float
    interval: float
    offset: int
    days_shown: int
    today_label: Optional[str]
    timeout: float
    cors_proxy: str
    icons: Path
    lang: str = "de"
    days: int = 6
    date_format: str = defaults.FORECAST_DATE_FORMAT


@dataclass(frozen=True)
class ClockConfig:
    locale: str
    interval: float
    date_format: str
    time_format: str
    timezone: Optional[str]
    last_updated_format: str


@dataclass(frozen=True)
class DashboardConfig:
    variant: str
    hub: HubConfig
    forecast: ForecastConfig
    clock: ClockConfig
    moon_phases: Path
    demo: bool = False


def load_config(path: str) -> Dict:
    """Load dashboard config from a YAML file. Missing file -> {}."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file not found: %s (using defaults)", path)
        return {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _env(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _number(section: Dict, key: str, default, cast=float, minimum=None):
    value = section.get(key, default)
    try:
        value = cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _resolve_path(value: str) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = BASE_DIR / path
    return path


def _timezone(name) -> Optional[str]:
    if not name:
        return None
    try:
        ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone '{name}'") from exc
    return str(name)


def _section(raw: Dict, key: str) -> Dict:
    section = raw.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return section


def _build_slots(entries) -> Tuple[SensorSlot, ...]:
    if not isinstance(entries, list) or not entries:
        raise ConfigError("hub.sensors must be a non-empty list")

    slots = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError(f"Invalid sensor entry: {entry!r}")
        missing = [k for k in ("slot", "device", "capability") if not entry.get(k)]
        if missing:
            raise ConfigError(f"Sensor entry {entry!r} is missing {', '.join(missing)}")
        name = str(entry["slot"])
        if name in seen:
            raise ConfigError(f"Duplicate sensor slot: {name}")
        seen.add(name)
        slots.append(SensorSlot(
            slot=name,
            device=str(entry["device"]),
            capability=str(entry["capability"]),
            label=str(entry.get("label", name)),
            group=str(entry.get("group", "indoor")),
            decimals=_number(entry, "decimals", 1, int, 0),
            units=str(entry.get("units", "")),
        ))
    return tuple(slots)


def build_config(
    raw: Dict[str, Any],
    variant: Optional[str] = None,
    demo: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> DashboardConfig:
    """Merge defaults, the variant preset, raw YAML data and the environment."""
    env = os.environ if env is None else env

    variant = variant or raw.get("variant") or defaults.DEFAULT_VARIANT
    if variant not in defaults.VARIANTS:
        raise ConfigError(
            f"Unknown variant '{variant}' (choose from {', '.join(defaults.VARIANTS)})"
        )
    preset = defaults.VARIANTS[variant]

    # Hub
    hub_raw = _section(raw, "hub")
    mode = hub_raw.get("mode", preset["hub_mode"])
    if mode not in HUB_MODES:
        raise ConfigError(f"Unknown hub mode '{mode}'")
    hub = HubConfig(
        mode=mode,
        url=(_env(env, "HOMEY_URL") or hub_raw.get("url") or "").rstrip("/"),
        token=_env(env, "HOMEY_TOKEN") or hub_raw.get("token") or "",
        interval=_number(hub_raw, "interval", preset["sensor_interval"], minimum=1),
        timeout=_number(hub_raw, "timeout", defaults.HUB_TIMEOUT, minimum=1),
        watch_interval=_number(
            hub_raw, "watch_interval", defaults.HUB_WATCH_INTERVAL, minimum=0.1
        ),
        max_workers=_number(hub_raw, "max_workers", defaults.HUB_MAX_WORKERS, int, 1),
        slots=_build_slots(hub_raw.get("sensors", defaults.SENSOR_SLOTS)),
    )

    # Forecast
    fc_raw = _section(raw, "forecast")
    provider = "demo" if demo else fc_raw.get("provider", preset["provider"])
    if provider not in defaults.PROVIDERS:
        raise ConfigError(
            f"Unknown forecast provider '{provider}' "
            f"(choose from {', '.join(defaults.PROVIDERS)})"
        )
    provider_defaults = defaults.PROVIDERS[provider]
    today_label = fc_raw["today_label"] if "today_label" in fc_raw else preset["today_label"]
    forecast = ForecastConfig(
        provider=provider,
        api_key=_env(env, "WEATHER_API_KEY") or fc_raw.get("api_key") or "",
        base_url=str(fc_raw.get("base_url", provider_defaults["base_url"])).rstrip("/"),
        latitude=_number(fc_raw, "latitude", defaults.LATITUDE),
        longitude=_number(fc_raw, "longitude", defaults.LONGITUDE),
        interval=_number(fc_raw, "interval", preset["forecast_interval"], minimum=1),
        offset=_number(fc_raw, "offset", preset["forecast_offset"], int, 0),
        days_shown=_number(fc_raw, "days_shown", defaults.FORECAST_DAYS_SHOWN, int, 1),
        today_label=str(today_label) if today_label else None,
        timeout=_number(fc_raw, "timeout", defaults.FORECAST_TIMEOUT, minimum=1),
        cors_proxy=str(fc_raw.get("cors_proxy", defaults.CORS_PROXY) or ""),
        icons=_resolve_path(fc_raw.get("icons", provider_defaults["icons"])),
        lang=str(fc_raw.get("lang", provider_defaults.get("lang", "de"))),
        days=_number(fc_raw, "days", provider_defaults.get("days", 6), int, 1),
        date_format=str(fc_raw.get("date_format", defaults.FORECAST_DATE_FORMAT)),
    )

    # Clock
    clock_raw = _section(raw, "clock")
    locale = clock_raw.get("locale", defaults.LOCALE)
    if locale not in defaults.WEEKDAYS:
        raise ConfigError(
            f"Unsupported locale '{locale}' (choose from {', '.join(defaults.WEEKDAYS)})"
        )
    clock = ClockConfig(
        locale=locale,
        interval=_number(clock_raw, "interval", defaults.TIME_INTERVAL, minimum=1),
        date_format=str(clock_raw.get("date_format", defaults.DATE_FORMAT)),
        time_format=str(clock_raw.get("time_format", defaults.TIME_FORMAT)),
        timezone=_timezone(clock_raw.get("timezone")),
        last_updated_format=str(
            clock_raw.get("last_updated_format", defaults.LAST_UPDATED_FORMAT)
        ),
    )

    if not demo:
        if not hub.url:
            raise ConfigError("hub.url is not set (or export HOMEY_URL)")
        if provider != "demo" and not forecast.api_key:
            raise ConfigError("forecast.api_key is not set (or export WEATHER_API_KEY)")

    return DashboardConfig(
        variant=variant,
        hub=hub,
        forecast=forecast,
        clock=clock,
        moon_phases=_resolve_path(raw.get("moon_phases", defaults.MOON_PHASES)),
        demo=demo,
    )


def get_config(
    path: str = "dashboard.yaml",
    variant: Optional[str] = None,
    demo: bool = False,
) -> DashboardConfig:
    """Load and build the configuration in one step."""
    return build_config(load_config(path), variant=variant, demo=demo)
