"""Client for the home-automation hub (Homey Web API).

Only the read side the dashboard needs is implemented:

    get_device(id)                      -> HubDevice with a capability snapshot
    subscribe(id, capability, callback) -> disposer
    get_latest_log_value(uri, capability) -> newest insight-log value

The HTTP API has no push channel, so subscribe() is served by a
CapabilityWatcher thread that re-reads subscribed devices and calls the
listeners whenever a value changes. Authentication is out of scope: the
client is handed a bearer token of an already authenticated session.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import requests

from core.state import SensorReading

logger = logging.getLogger(__name__)

Listener = Callable[[SensorReading], None]


class HubError(Exception):
    """The hub could not be reached or returned something unusable."""


def device_uri(device_id: str) -> str:
    """Insight-log URI of a device."""
    return f"homey:device:{device_id}"


@dataclass(frozen=True)
class HubDevice:
    id: str
    name: str = ""
    capabilities: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "HubDevice":
        if not isinstance(data, dict) or "id" not in data:
            raise HubError(f"Unexpected device payload: {data!r}")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            capabilities=dict(data.get("capabilitiesObj") or {}),
        )

    def reading(self, capability: str, fallback_units: str = "") -> SensorReading:
        """Current value of one capability."""
        cap = self.capabilities.get(capability)
        if not cap or cap.get("value") is None:
            raise HubError(f"Device {self.id} has no value for {capability}")
        try:
            value = float(cap["value"])
        except (TypeError, ValueError) as exc:
            raise HubError(f"Device {self.id} {capability}: {cap['value']!r}") from exc
        return SensorReading(value=value, units=cap.get("units") or fallback_units)


class HubClient(ABC):
    """The hub query surface the dashboard consumes."""

    @abstractmethod
    def get_device(self, device_id: str) -> HubDevice:
        ...

    @abstractmethod
    def get_latest_log_value(self, uri: str, capability: str) -> SensorReading:
        ...

    @abstractmethod
    def subscribe(self, device_id: str, capability: str,
                  callback: Listener) -> Callable[[], None]:
        ...

    def close(self):
        """Release resources. Override if needed."""


class CapabilityWatcher:
    """Turns repeated device reads into change notifications.

    The first read of a capability only sets the baseline; listeners are
    called for every later value that differs from the previous one.
    """

    def __init__(self, client: HubClient, interval: float = 5.0):
        self._client = client
        self.interval = interval
        self._lock = threading.Lock()
        self._listeners: Dict[int, Tuple[str, str, Listener]] = {}
        self._last: Dict[Tuple[str, str], float] = {}
        self._ids = itertools.count(1)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add(self, device_id: str, capability: str, callback: Listener) -> Callable[[], None]:
        with self._lock:
            token = next(self._ids)
            self._listeners[token] = (device_id, capability, callback)
        self._ensure_running()

        def dispose():
            self.remove(token)

        return dispose

    def remove(self, token: int):
        with self._lock:
            entry = self._listeners.pop(token, None)
            if entry is None:
                return
            key = (entry[0], entry[1])
            if not any((d, c) == key for d, c, _ in self._listeners.values()):
                self._last.pop(key, None)
            empty = not self._listeners
        if empty:
            self.stop()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _ensure_running(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="hub-watcher"
        )
        self._thread.start()
        logger.info("Capability watcher started (%.1fs interval)", self.interval)

    def _run(self):
        while not self._stop.is_set():
            self.check()
            self._stop.wait(self.interval)

    def check(self) -> int:
        """Read every watched device once. Returns the number of notifications."""
        with self._lock:
            listeners = list(self._listeners.values())

        by_device: Dict[str, list] = {}
        for device_id, capability, callback in listeners:
            by_device.setdefault(device_id, []).append((capability, callback))

        notified = 0
        for device_id, entries in by_device.items():
            try:
                device = self._client.get_device(device_id)
            except HubError as exc:
                logger.warning("Watcher: cannot read device %s: %s", device_id, exc)
                continue

            changed: Dict[str, SensorReading] = {}
            for capability in {cap for cap, _ in entries}:
                try:
                    reading = device.reading(capability)
                except HubError as exc:
                    logger.debug("Watcher: %s", exc)
                    continue
                key = (device_id, capability)
                with self._lock:
                    previous = self._last.get(key)
                    self._last[key] = reading.value
                if previous is not None and previous != reading.value:
                    changed[capability] = reading

            for capability, callback in entries:
                if capability not in changed:
                    continue
                try:
                    callback(changed[capability])
                    notified += 1
                except Exception as exc:
                    logger.error("Listener error [%s/%s]: %s", device_id, capability, exc)
        return notified

    def stop(self):
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)


class RestHubClient(HubClient):
    """Homey Web API over HTTP with a bearer token."""

    def __init__(self, base_url: str, token: str, timeout: float = 10,
                 watch_interval: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        if token:
            self._session.headers.update({"Authorization": f"Bearer {token}"})
        self._watcher = CapabilityWatcher(self, watch_interval)

    def _get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise HubError(f"GET {path} failed: {exc}") from exc
        if resp.status_code != 200:
            raise HubError(f"GET {path}: HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise HubError(f"GET {path}: response is not JSON") from exc

    def get_device(self, device_id: str) -> HubDevice:
        data = self._get(f"/api/manager/devices/device/{quote(device_id, safe='')}")
        return HubDevice.from_json(data)

    def get_latest_log_value(self, uri: str, capability: str) -> SensorReading:
        data = self._get(
            f"/api/manager/insights/log/{quote(uri, safe='')}/"
            f"{quote(capability, safe='')}/entry"
        )
        values = data.get("values") if isinstance(data, dict) else data
        if not isinstance(values, list):
            raise HubError(f"Insight log {uri}/{capability}: unexpected payload")

        for entry in reversed(values):
            if isinstance(entry, dict) and entry.get("v") is not None:
                units = data.get("units", "") if isinstance(data, dict) else ""
                return SensorReading(value=float(entry["v"]), units=units or "")
        raise HubError(f"Insight log {uri}/{capability} has no entries")

    def subscribe(self, device_id: str, capability: str,
                  callback: Listener) -> Callable[[], None]:
        return self._watcher.add(device_id, capability, callback)

    def close(self):
        self._watcher.stop()
        self._session.close()
