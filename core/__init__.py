"""Core framework for the home dashboard.

Architecture:
    DataSource       -- fetches data and publishes a state-update message
    EventBus         -- thread-safe queue, drained by the single state owner
    RefreshScheduler -- independent repeating timers sharing a liveness flag
    DisplayState     -- immutable last-known-good values, changed via reduce()
    Registry         -- forecast providers and hub feeds by name
"""

from core.event_bus import EventBus
from core.data_source import DataSource
from core.registry import FEED_REGISTRY, PROVIDER_REGISTRY, register_feed, register_provider
from core.scheduler import Liveness, RefreshScheduler, RefreshTimer
from core.state import DisplayState, reduce

__all__ = [
    "EventBus",
    "DataSource",
    "FEED_REGISTRY",
    "PROVIDER_REGISTRY",
    "register_feed",
    "register_provider",
    "Liveness",
    "RefreshScheduler",
    "RefreshTimer",
    "DisplayState",
    "reduce",
]
