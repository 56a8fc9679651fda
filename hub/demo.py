"""Simulated hub for running the dashboard without hardware.

Every read nudges each capability by a small random step, so both the
live listeners and the insight poller see values move.
"""

import logging
import random
import threading
from typing import Callable, Dict, Tuple

from core.state import SensorReading
from hub.client import CapabilityWatcher, HubClient, HubDevice, HubError, Listener

logger = logging.getLogger(__name__)

# capability -> (start value, step, units, decimals)
DEMO_CAPABILITIES = {
    "measure_temperature": (21.0, 0.2, "°C", 1),
    "measure_humidity": (48.0, 1.0, "%", 0),
    "measure_co2": (620.0, 15.0, "ppm", 0),
    "measure_noise": (38.0, 2.0, "dB", 0),
    "measure_pressure": (1013.0, 0.5, "mbar", 1),
}


class DemoHubClient(HubClient):
    def __init__(self, watch_interval: float = 5.0, seed=None):
        self._rng = random.Random(seed)
        self._lock = threading.Lock()
        self._values: Dict[Tuple[str, str], float] = {}
        self._watcher = CapabilityWatcher(self, watch_interval)

    def _next(self, device_id: str, capability: str) -> float:
        start, step, _, decimals = DEMO_CAPABILITIES[capability]
        key = (device_id, capability)
        with self._lock:
            value = self._values.get(key, start)
            value = round(value + self._rng.uniform(-step, step), decimals)
            self._values[key] = value
        return value

    def get_device(self, device_id: str) -> HubDevice:
        capabilities = {
            cap: {"value": self._next(device_id, cap), "units": entry[2]}
            for cap, entry in DEMO_CAPABILITIES.items()
        }
        return HubDevice(id=device_id, name=f"Demo {device_id[:8]}",
                         capabilities=capabilities)

    def get_latest_log_value(self, uri: str, capability: str) -> SensorReading:
        if capability not in DEMO_CAPABILITIES:
            raise HubError(f"Demo hub has no log for {capability}")
        device_id = uri.rsplit(":", 1)[-1]
        units = DEMO_CAPABILITIES[capability][2]
        return SensorReading(value=self._next(device_id, capability), units=units)

    def subscribe(self, device_id: str, capability: str,
                  callback: Listener) -> Callable[[], None]:
        return self._watcher.add(device_id, capability, callback)

    def close(self):
        self._watcher.stop()
