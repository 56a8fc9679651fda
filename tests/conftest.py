from __future__ import annotations

import itertools
from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple

import pytest
import requests

from core.event_bus import EventBus
from core.settings import DashboardConfig, build_config
from core.state import SensorReading
from hub.client import HubClient, HubDevice, HubError

INDOOR = "indoor-device"
OUTDOOR = "outdoor-device"

FIXED_NOW = datetime(2026, 10, 19, 7, 5, 0)  # a Monday

SLOTS = [
    {"slot": "indoor_temperature", "device": INDOOR, "capability": "measure_temperature",
     "label": "Temperature", "group": "indoor", "decimals": 1},
    {"slot": "indoor_co2", "device": INDOOR, "capability": "measure_co2",
     "label": "CO2", "group": "indoor", "decimals": 0},
    {"slot": "indoor_humidity", "device": INDOOR, "capability": "measure_humidity",
     "label": "Humidity", "group": "indoor", "decimals": 0},
    {"slot": "indoor_noise", "device": INDOOR, "capability": "measure_noise",
     "label": "Noise", "group": "indoor", "decimals": 0},
    {"slot": "outdoor_temperature", "device": OUTDOOR, "capability": "measure_temperature",
     "label": "Temperature", "group": "outdoor", "decimals": 1},
    {"slot": "outdoor_humidity", "device": OUTDOOR, "capability": "measure_humidity",
     "label": "Humidity", "group": "outdoor", "decimals": 0},
]


class FakeHubClient(HubClient):
    """In-memory hub with manual change emission."""

    def __init__(self, devices: Dict[str, Dict[str, Tuple[float, str]]]):
        self.devices = devices
        self.logs: Dict[Tuple[str, str], Any] = {}
        self.failing_devices: set = set()
        self.listeners: Dict[int, Tuple[str, str, Callable]] = {}
        self.disposed = 0
        self.device_reads = 0
        self._ids = itertools.count(1)

    def get_device(self, device_id: str) -> HubDevice:
        self.device_reads += 1
        if device_id in self.failing_devices or device_id not in self.devices:
            raise HubError(f"unknown device {device_id}")
        caps = {
            cap: {"value": value, "units": units}
            for cap, (value, units) in self.devices[device_id].items()
        }
        return HubDevice(id=device_id, name=device_id, capabilities=caps)

    def get_latest_log_value(self, uri: str, capability: str) -> SensorReading:
        value = self.logs.get((uri, capability))
        if value is None:
            raise HubError(f"no log {uri}/{capability}")
        if isinstance(value, Exception):
            raise value
        return value

    def subscribe(self, device_id: str, capability: str, callback) -> Callable[[], None]:
        token = next(self._ids)
        self.listeners[token] = (device_id, capability, callback)

        def dispose():
            if self.listeners.pop(token, None) is not None:
                self.disposed += 1

        return dispose

    def emit(self, device_id: str, capability: str, value: float, units: str = "") -> int:
        self.devices.setdefault(device_id, {})[capability] = (value, units)
        called = 0
        for dev, cap, callback in list(self.listeners.values()):
            if (dev, cap) == (device_id, capability):
                callback(SensorReading(value=value, units=units))
                called += 1
        return called


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, bad_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; returns queued responses in order."""

    def __init__(self, *responses):
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}
        self.closed = False

    def queue(self, response):
        self.responses.append(response)

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers or {}, "timeout": timeout})
        if not self.responses:
            raise requests.ConnectionError("no response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


def darksky_payload(count: int = 7, start: int = 1792368000) -> Dict[str, Any]:
    return {
        "timezone": "Europe/Berlin",
        "daily": {
            "data": [
                {
                    "time": start + i * 86400,
                    "icon": "rain" if i % 2 else "clear-day",
                    "temperatureMin": 4.04 + i,
                    "temperatureMax": 11.26 + i,
                    "humidity": 0.81,
                    "precipProbability": 0.35,
                    "moonPhase": 0.49,
                }
                for i in range(count)
            ]
        },
    }


def weatherbit_payload(count: int = 6, start: int = 1792368000) -> Dict[str, Any]:
    return {
        "city_name": "Hamburg",
        "data": [
            {
                "ts": start + i * 86400,
                "weather": {"code": 500 + i, "icon": "r01d", "description": "Leichter Regen"},
                "max_temp": 12.3 + i,
                "min_temp": 5.1,
                "rh": 78,
                "pop": 40,
                "moon_phase_lunation": 0.25,
            }
            for i in range(count)
        ],
    }


def make_config(variant: str = "live", demo: bool = False, **sections) -> DashboardConfig:
    raw: Dict[str, Any] = {
        "hub": {"url": "http://hub.local", "token": "secret", "sensors": SLOTS},
        "forecast": {"api_key": "key123", "latitude": 53.56, "longitude": 9.96},
    }
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    return build_config(raw, variant=variant, demo=demo, env={})


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def hub() -> FakeHubClient:
    return FakeHubClient({
        INDOOR: {
            "measure_temperature": (21.46, "°C"),
            "measure_co2": (612.0, "ppm"),
            "measure_humidity": (47.6, "%"),
            "measure_noise": (38.0, "dB"),
        },
        OUTDOOR: {
            "measure_temperature": (8.04, "°C"),
            "measure_humidity": (81.0, "%"),
        },
    })


@pytest.fixture
def live_config() -> DashboardConfig:
    return make_config("live")


@pytest.fixture
def insights_config() -> DashboardConfig:
    return make_config("insights")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()
