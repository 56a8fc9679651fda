"""Daily weather forecast data sources.

Each provider issues one GET per forecast tick and turns the JSON body
into a ForecastDocument. Errors are raised as ForecastError and left to
the scheduler, which logs them and keeps the previous forecast on screen.

Config example (in dashboard.yaml):
    forecast:
      provider: "darksky"       # or "weatherbit"
      latitude: 53.56
      longitude: 9.96
      interval: 300
      cors_proxy: ""            # optional URL prefix
"""

import logging
import random
from abc import abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests

from core.data_source import DataSource
from core.registry import register_provider
from core.state import ForecastDay, ForecastDocument, ForecastReplaced

logger = logging.getLogger(__name__)


class ForecastError(Exception):
    """The provider could not deliver a usable forecast."""


def _fraction(value, scale: float = 1.0) -> Optional[float]:
    if value is None:
        return None
    return float(value) / scale


class ForecastProvider(DataSource):
    """Base class for HTTP forecast providers.

    get_forecast() = parse(request()). request() issues the GET; parse()
    maps the provider's JSON body onto a ForecastDocument.
    """

    name = "forecast"
    default_interval = 300.0

    def __init__(self, source_id: str, bus, config: Optional[Dict] = None,
                 session: Optional[requests.Session] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        super().__init__(source_id, bus, config, clock)
        self.api_key = self.config.get("api_key", "")
        self.base_url = str(self.config.get("base_url", "")).rstrip("/")
        self.latitude = self.config.get("latitude", 53.56)
        self.longitude = self.config.get("longitude", 9.96)
        self.cors_proxy = self.config.get("cors_proxy", "") or ""
        self._timeout = self.config.get("timeout", 15)
        self._session = session or requests.Session()

    @abstractmethod
    def build_url(self) -> str:
        ...

    @abstractmethod
    def parse(self, raw: Dict[str, Any]) -> ForecastDocument:
        ...

    def request(self) -> Dict[str, Any]:
        url = f"{self.cors_proxy}{self.build_url()}"
        try:
            resp = self._session.get(
                url,
                headers={"Cache-Control": "no-cache"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ForecastError(f"{self.name}: request failed: {exc}") from exc

        if resp.status_code != 200:
            raise ForecastError(f"{self.name}: HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise ForecastError(f"{self.name}: response is not JSON") from exc

    def get_forecast(self) -> ForecastDocument:
        raw = self.request()
        try:
            document = self.parse(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ForecastError(f"{self.name}: malformed forecast: {exc!r}") from exc

        logger.debug("%s: %d forecast days", self.name, len(document.days))
        return document

    def fetch(self) -> ForecastReplaced:
        document = self.get_forecast()
        return ForecastReplaced(document=document, at=self.now())

    def close(self):
        self._session.close()


@register_provider("darksky")
class DarkSkyProvider(ForecastProvider):
    """Provider A: /forecast/{key}/{lat},{lon}?units=ca"""

    name = "darksky"

    def build_url(self) -> str:
        return (
            f"{self.base_url}/forecast/{self.api_key}/"
            f"{self.latitude},{self.longitude}?units=ca"
        )

    def parse(self, raw: Dict[str, Any]) -> ForecastDocument:
        days: List[ForecastDay] = []
        for entry in raw["daily"]["data"]:
            days.append(ForecastDay(
                timestamp=int(entry["time"]),
                icon=str(entry.get("icon", "")),
                temperature_min=float(entry["temperatureMin"]),
                temperature_max=float(entry["temperatureMax"]),
                humidity=_fraction(entry.get("humidity")),
                precip_probability=_fraction(entry.get("precipProbability")),
                moon_phase=_fraction(entry.get("moonPhase")),
                description=entry.get("summary", ""),
            ))
        return ForecastDocument(days=tuple(days), location=raw.get("timezone", ""))


@register_provider("weatherbit")
class WeatherbitProvider(ForecastProvider):
    """Provider B: /v2.0/forecast/daily?key=..&lang=..&days=..&lat=..&lon=..

    rh and pop arrive as percentages and are scaled to fractions.
    """

    name = "weatherbit"

    def __init__(self, source_id: str, bus, config: Optional[Dict] = None, **kwargs):
        super().__init__(source_id, bus, config, **kwargs)
        self.lang = self.config.get("lang", "de")
        self.days = self.config.get("days", 6)

    def build_url(self) -> str:
        query = urlencode({
            "key": self.api_key,
            "lang": self.lang,
            "days": self.days,
            "lat": self.latitude,
            "lon": self.longitude,
        })
        return f"{self.base_url}/v2.0/forecast/daily?{query}"

    def parse(self, raw: Dict[str, Any]) -> ForecastDocument:
        days: List[ForecastDay] = []
        for entry in raw["data"]:
            weather = entry.get("weather") or {}
            days.append(ForecastDay(
                timestamp=int(entry["ts"]),
                icon=str(weather.get("code", "")),
                temperature_min=float(entry["min_temp"]),
                temperature_max=float(entry["max_temp"]),
                humidity=_fraction(entry.get("rh"), 100.0),
                precip_probability=_fraction(entry.get("pop"), 100.0),
                moon_phase=_fraction(entry.get("moon_phase_lunation")),
                description=weather.get("description", ""),
            ))
        return ForecastDocument(days=tuple(days), location=raw.get("city_name", ""))


@register_provider("demo")
class DemoForecastProvider(DarkSkyProvider):
    """Simulated Dark Sky style forecast for running without an API key."""

    name = "demo"
    ICONS = ["clear-day", "partly-cloudy-day", "cloudy", "rain", "snow", "fog"]

    def request(self) -> Dict[str, Any]:
        today = self.now().replace(hour=0, minute=0, second=0, microsecond=0)
        data = []
        for i in range(7):
            day = today + timedelta(days=i)
            low = round(random.uniform(-2.0, 12.0), 2)
            data.append({
                "time": int(day.timestamp()),
                "icon": random.choice(self.ICONS),
                "summary": "Demo",
                "temperatureMin": low,
                "temperatureMax": round(low + random.uniform(2.0, 9.0), 2),
                "humidity": round(random.uniform(0.4, 0.95), 2),
                "precipProbability": round(random.uniform(0.0, 1.0), 2),
                "moonPhase": (day.toordinal() % 30) / 30.0,
            })
        return {"timezone": "Demo", "daily": {"data": data}}
