"""The mounted dashboard: single owner of the display state.

Lifecycle:

    dashboard = build_dashboard(config, hub)
    dashboard.mount()      # one immediate fetch per category, then timers
    view = dashboard.render()
    dashboard.teardown()   # liveness off, timers cancelled, listeners disposed

Timers and hub listeners only publish messages. The dashboard's dispatcher
thread (or a direct pump() call) drains the bus and applies each message
with reduce(), so the state has exactly one writer.
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from datetime import tzinfo
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from core.data_source import DataSource
from core.event_bus import EventBus
from core.icons import IconMapping
from core.registry import FEED_REGISTRY, PROVIDER_REGISTRY
from core.scheduler import Liveness, RefreshScheduler
from core.settings import ConfigError, DashboardConfig
from core.state import DisplayState, reduce
from hub.client import HubClient
from sources.hub_source import HubSensorFeed
from sources.time_source import TimeSource
from ui.view import render_dashboard

# Import sources to trigger @register_provider / @register_feed decorators
import sources  # noqa: F401

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, DisplayState], None]


class Dashboard:
    """Owns the timers, subscriptions and state of one dashboard view."""

    def __init__(
        self,
        config: DashboardConfig,
        bus: EventBus,
        time_source: TimeSource,
        feed: HubSensorFeed,
        provider: DataSource,
        icons: Optional[IconMapping] = None,
        moon_names: Optional[IconMapping] = None,
    ):
        self.config = config
        self.bus = bus
        self.time_source = time_source
        self.feed = feed
        self.provider = provider
        self.icons = icons
        self.moon_names = moon_names
        self._tz: Optional[tzinfo] = (
            ZoneInfo(config.clock.timezone) if config.clock.timezone else None
        )

        self._state = DisplayState()
        self._state_lock = threading.Lock()
        self._listeners: List[ChangeListener] = []
        self._scheduler: Optional[RefreshScheduler] = None
        self._resources: Optional[ExitStack] = None
        self._pump_stop = threading.Event()
        self._pump_thread: Optional[threading.Thread] = None

    # ─── Lifecycle ───

    @property
    def mounted(self) -> bool:
        return self._scheduler is not None and self._scheduler.liveness.alive

    @property
    def liveness(self) -> Optional[Liveness]:
        return self._scheduler.liveness if self._scheduler else None

    @property
    def scheduler(self) -> Optional[RefreshScheduler]:
        return self._scheduler

    def mount(self, start_threads: bool = True):
        """Fetch every category once, then start timers and the dispatcher.

        With start_threads=False only the immediate fetches run; the
        caller drives further ticks through scheduler timers' fire() and
        pump(). Tests use this.
        """
        if self.mounted:
            return
        scheduler = RefreshScheduler()
        liveness = scheduler.liveness
        resources = ExitStack()

        sources = {
            "time": self.time_source,
            "sensors": self.feed,
            "forecast": self.provider,
        }
        for name, source in sources.items():
            resources.callback(source.close)
            resources.callback(self.bus.subscribe(source.topic, self._apply))
            scheduler.add(name, self._refresher(source, liveness), source.interval)

        try:
            for dispose in self.feed.attach(liveness):
                resources.callback(dispose)
        except Exception:
            liveness.kill()
            resources.close()
            raise

        self._scheduler = scheduler
        self._resources = resources

        if start_threads:
            scheduler.start(immediate=True)
        else:
            for timer in scheduler.timers.values():
                timer.fire()
        self.pump()

        if start_threads:
            self._pump_stop.clear()
            self._pump_thread = threading.Thread(
                target=self._pump_loop, daemon=True, name="dashboard-dispatch"
            )
            self._pump_thread.start()
        logger.info("Dashboard mounted (variant=%s, hub=%s, provider=%s)",
                    self.config.variant, self.config.hub.mode,
                    self.config.forecast.provider)

    def teardown(self):
        """Stop all updates. Safe to call more than once."""
        if self._scheduler is None:
            return
        self._scheduler.teardown()
        self._pump_stop.set()
        if self._pump_thread and self._pump_thread is not threading.current_thread():
            self._pump_thread.join(timeout=2.0)
        self._pump_thread = None
        if self._resources is not None:
            self._resources.close()
            self._resources = None
        dropped = self.bus.clear()
        if dropped:
            logger.debug("Dropped %d updates queued after teardown", dropped)
        logger.info("Dashboard torn down")

    @contextmanager
    def mounted_view(self, start_threads: bool = True):
        self.mount(start_threads=start_threads)
        try:
            yield self
        finally:
            self.teardown()

    @staticmethod
    def _refresher(source: DataSource, liveness: Liveness) -> Callable[[], None]:
        def refresh():
            source.refresh(liveness)
        return refresh

    # ─── State ───

    def pump(self) -> int:
        """Apply every queued update on the calling thread."""
        total = 0
        while True:
            handled = self.bus.drain()
            total += handled
            if handled == 0:
                return total

    def _pump_loop(self):
        while not self._pump_stop.is_set():
            self.bus.drain(timeout=0.1)

    def _apply(self, message: Any):
        liveness = self.liveness
        if liveness is None or not liveness.alive:
            return
        with self._state_lock:
            self._state = reduce(self._state, message)
            state = self._state
        category = getattr(message, "category", "")
        for listener in list(self._listeners):
            try:
                listener(category, state)
            except Exception as exc:
                logger.error("Dashboard listener error [%s]: %s", category, exc)

    def snapshot(self) -> DisplayState:
        with self._state_lock:
            return self._state

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Call listener(category, state) after every applied update."""
        self._listeners.append(listener)

        def dispose():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    # ─── Views ───

    def render(self) -> Dict[str, Any]:
        return render_dashboard(
            self.snapshot(), self.config, self.icons, self.moon_names, self._tz
        )

    def health(self) -> Dict[str, Any]:
        state = self.snapshot()
        timers = self._scheduler.timers if self._scheduler else {}
        return {
            "mounted": self.mounted,
            "variant": self.config.variant,
            "updated": {
                category: stamp.isoformat() for category, stamp in state.updated.items()
            },
            "timers": {
                name: {
                    "interval": timer.interval,
                    "runs": timer.runs,
                    "failures": timer.failures,
                }
                for name, timer in timers.items()
            },
        }


def build_dashboard(
    config: DashboardConfig,
    hub: HubClient,
    bus: Optional[EventBus] = None,
    session=None,
    clock=None,
) -> Dashboard:
    """Instantiate sources from the registries according to config."""
    bus = bus or EventBus()

    time_source = TimeSource("time", bus, {
        "interval": config.clock.interval,
        "locale": config.clock.locale,
        "date_format": config.clock.date_format,
        "time_format": config.clock.time_format,
        "timezone": config.clock.timezone,
    }, clock=clock)

    if config.hub.mode not in FEED_REGISTRY:
        raise ConfigError(f"No sensor feed registered for mode '{config.hub.mode}'")
    feed = FEED_REGISTRY[config.hub.mode](
        "sensors", bus,
        {
            "interval": config.hub.interval,
            "max_workers": config.hub.max_workers,
            "timezone": config.clock.timezone,
        },
        hub=hub, slots=config.hub.slots, clock=clock,
    )

    fc = config.forecast
    if fc.provider not in PROVIDER_REGISTRY:
        raise ConfigError(f"No forecast provider registered as '{fc.provider}'")
    provider = PROVIDER_REGISTRY[fc.provider]("forecast", bus, {
        "interval": fc.interval,
        "api_key": fc.api_key,
        "base_url": fc.base_url,
        "latitude": fc.latitude,
        "longitude": fc.longitude,
        "cors_proxy": fc.cors_proxy,
        "timeout": fc.timeout,
        "lang": fc.lang,
        "days": fc.days,
        "timezone": config.clock.timezone,
    }, session=session, clock=clock)

    return Dashboard(
        config,
        bus,
        time_source,
        feed,
        provider,
        icons=IconMapping.load(fc.icons),
        moon_names=IconMapping.load(config.moon_phases, default=""),
    )
