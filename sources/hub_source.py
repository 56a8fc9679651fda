"""Hub sensor feeds.

Two ways of keeping the climate readings current:

  live      reads the capability snapshot of every configured device and
            registers one change listener per (device, capability) pair;
            each tick re-reads the snapshot to catch missed changes
  insights  on each tick, looks up the newest insight-log entry for every
            (device, capability) pair, all lookups in parallel; one failed
            lookup fails the whole batch so readings never mix two ticks

Both publish ReadingsUpdated messages keyed by display slot.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from core.data_source import DataSource
from core.registry import register_feed
from core.scheduler import Liveness
from core.settings import SensorSlot
from core.state import ReadingsUpdated, SensorReading
from hub.client import HubClient, HubDevice, device_uri

logger = logging.getLogger(__name__)


def _with_units(reading: SensorReading, slot: SensorSlot) -> SensorReading:
    if reading.units or not slot.units:
        return reading
    return SensorReading(value=reading.value, units=slot.units)


class HubSensorFeed(DataSource):
    """Common wiring for feeds that read SensorSlots from the hub."""

    def __init__(self, source_id: str, bus, config: Optional[Dict] = None, *,
                 hub: HubClient, slots: Sequence[SensorSlot],
                 clock: Optional[Callable[[], datetime]] = None):
        super().__init__(source_id, bus, config, clock)
        self.hub = hub
        self.slots = tuple(slots)

    def attach(self, liveness: Liveness) -> List[Callable[[], None]]:
        """Register push listeners. Returns their disposers."""
        return []


@register_feed("live")
class LiveSensorFeed(HubSensorFeed):
    """Push model: device snapshot plus per-capability change listeners."""

    default_interval = 60.0

    def _devices(self) -> Dict[str, HubDevice]:
        devices: Dict[str, HubDevice] = {}
        for slot in self.slots:
            if slot.device not in devices:
                devices[slot.device] = self.hub.get_device(slot.device)
        return devices

    def fetch(self) -> ReadingsUpdated:
        devices = self._devices()
        readings = {
            slot.slot: devices[slot.device].reading(slot.capability, slot.units)
            for slot in self.slots
        }
        return ReadingsUpdated(readings=readings, at=self.now())

    def attach(self, liveness: Liveness) -> List[Callable[[], None]]:
        disposers = []
        for slot in self.slots:
            disposers.append(self.hub.subscribe(
                slot.device, slot.capability, self._listener(slot, liveness)
            ))
        logger.info("LiveSensorFeed %s: %d listeners attached", self.source_id, len(disposers))
        return disposers

    def _listener(self, slot: SensorSlot, liveness: Liveness):
        def on_change(reading: SensorReading):
            if not liveness.alive:
                return
            logger.debug("%s %s -> %s", slot.device, slot.capability, reading.value)
            self.bus.publish(self.topic, ReadingsUpdated(
                readings={slot.slot: _with_units(reading, slot)},
                at=self.now(),
            ))
        return on_change


@register_feed("insights")
class InsightSensorFeed(HubSensorFeed):
    """Pull model: newest insight-log value per slot."""

    default_interval = 300.0

    def __init__(self, source_id: str, bus, config: Optional[Dict] = None, **kwargs):
        super().__init__(source_id, bus, config, **kwargs)
        self.max_workers = int(self.config.get("max_workers", len(self.slots) or 1))

    def _lookup(self, slot: SensorSlot) -> SensorReading:
        reading = self.hub.get_latest_log_value(device_uri(slot.device), slot.capability)
        return _with_units(reading, slot)

    def fetch(self) -> ReadingsUpdated:
        with ThreadPoolExecutor(max_workers=self.max_workers,
                                thread_name_prefix="insights") as pool:
            futures = {slot.slot: pool.submit(self._lookup, slot) for slot in self.slots}
            # result() re-raises the first failure; nothing is published then
            readings = {name: future.result() for name, future in futures.items()}
        return ReadingsUpdated(readings=readings, at=self.now())
