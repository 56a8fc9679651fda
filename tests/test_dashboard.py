import threading
from zoneinfo import ZoneInfo

from core.dashboard import build_dashboard
from core.state import ReadingsUpdated, SensorReading
from hub.client import device_uri

from conftest import (
    FIXED_NOW,
    INDOOR,
    FakeResponse,
    FakeSession,
    darksky_payload,
    make_config,
    weatherbit_payload,
)


def _dashboard(config, hub, session, clock):
    return build_dashboard(config, hub, session=session, clock=clock)


def _values(view, group):
    return {r["slot"]: r["value"] for r in view["climate"]["groups"][group]}


def test_initial_render_reflects_hub_snapshot_before_any_timer(hub, live_config, fixed_clock):
    session = FakeSession(FakeResponse(payload=darksky_payload(7)))
    dashboard = _dashboard(live_config, hub, session, fixed_clock)

    dashboard.mount(start_threads=False)
    try:
        view = dashboard.render()
        assert not any(t.running for t in dashboard.scheduler.timers.values())
        assert _values(view, "indoor") == {
            "indoor_temperature": "21.5",
            "indoor_co2": "612",
            "indoor_humidity": "48",
            "indoor_noise": "38",
        }
        assert _values(view, "outdoor") == {
            "outdoor_temperature": "8.0",
            "outdoor_humidity": "81",
        }
        assert view["clock"]["time"] == "07:05"
        assert view["clock"]["date"] == "Mo, 19.10.2026"
        assert len(view["forecast"]["days"]) == 5
        assert view["forecast"]["days"][0]["label"] == "Heute"
        assert view["forecast"]["days"][0]["icon"] == "sun"
    finally:
        dashboard.teardown()


def test_push_notification_updates_only_its_slot(hub, live_config, fixed_clock):
    session = FakeSession(FakeResponse(payload=darksky_payload()))
    dashboard = _dashboard(live_config, hub, session, fixed_clock)
    dashboard.mount(start_threads=False)
    try:
        hub.emit(INDOOR, "measure_co2", 800.0, "ppm")
        dashboard.pump()

        state = dashboard.snapshot()
        assert state.readings["indoor_co2"] == SensorReading(800.0, "ppm")
        assert state.readings["indoor_temperature"] == SensorReading(21.46, "°C")
    finally:
        dashboard.teardown()


def test_failed_forecast_tick_keeps_previous_forecast(hub, live_config):
    stamps = iter([FIXED_NOW.replace(minute=m) for m in range(0, 60)])
    session = FakeSession(
        FakeResponse(payload=darksky_payload(7)),
        FakeResponse(status_code=503),
        FakeResponse(payload=darksky_payload(6)),
    )
    dashboard = _dashboard(live_config, hub, session, lambda: next(stamps))
    dashboard.mount(start_threads=False)
    try:
        forecast_timer = dashboard.scheduler.get("forecast")
        before = dashboard.snapshot()

        assert forecast_timer.fire() is False
        dashboard.pump()
        after_failure = dashboard.snapshot()
        assert after_failure.forecast is before.forecast
        assert after_failure.last_updated("forecast") == before.last_updated("forecast")
        assert forecast_timer.failures == 1

        assert forecast_timer.fire() is True
        dashboard.pump()
        assert len(dashboard.snapshot().forecast.days) == 6
    finally:
        dashboard.teardown()


def test_failed_sensor_tick_keeps_previous_readings(hub, live_config, fixed_clock):
    session = FakeSession(FakeResponse(payload=darksky_payload()))
    dashboard = _dashboard(live_config, hub, session, fixed_clock)
    dashboard.mount(start_threads=False)
    try:
        before = dashboard.snapshot().readings
        hub.failing_devices.add(INDOOR)

        assert dashboard.scheduler.get("sensors").fire() is False
        dashboard.pump()

        assert dashboard.snapshot().readings == before
    finally:
        dashboard.teardown()


def test_teardown_disposes_listeners_and_freezes_state(hub, live_config, fixed_clock):
    session = FakeSession(FakeResponse(payload=darksky_payload()))
    dashboard = _dashboard(live_config, hub, session, fixed_clock)
    dashboard.mount(start_threads=False)
    assert len(hub.listeners) == 6
    timers = dashboard.scheduler.timers
    frozen = dashboard.snapshot()

    dashboard.teardown()

    assert hub.listeners == {}
    assert hub.disposed == 6
    assert session.closed
    assert dashboard.mounted is False

    hub.emit(INDOOR, "measure_temperature", 30.0, "°C")
    assert all(t.fire() is False for t in timers.values())
    dashboard.bus.publish("sensors", ReadingsUpdated(
        {"indoor_temperature": SensorReading(99.0, "°C")}, FIXED_NOW))
    dashboard.pump()

    assert dashboard.snapshot() is frozen


def test_fetch_completing_after_teardown_is_discarded(hub, live_config, fixed_clock):
    release = threading.Event()
    started = threading.Event()

    class SlowSession(FakeSession):
        def get(self, url, headers=None, timeout=None):
            if self.calls:
                started.set()
                release.wait(2)
            return super().get(url, headers, timeout)

    session = SlowSession(
        FakeResponse(payload=darksky_payload(7)),
        FakeResponse(payload=darksky_payload(2)),
    )
    dashboard = _dashboard(live_config, hub, session, fixed_clock)
    dashboard.mount(start_threads=False)
    frozen = dashboard.snapshot()

    worker = threading.Thread(target=dashboard.scheduler.get("forecast").fire)
    worker.start()
    assert started.wait(2)

    dashboard.teardown()
    release.set()
    worker.join(2)
    dashboard.pump()

    assert dashboard.bus.pending() == 0
    assert dashboard.snapshot() is frozen
    assert len(dashboard.snapshot().forecast.days) == 7


def test_change_listeners_receive_category(hub, live_config, fixed_clock):
    session = FakeSession(FakeResponse(payload=darksky_payload()))
    dashboard = _dashboard(live_config, hub, session, fixed_clock)
    seen = []
    dispose = dashboard.add_listener(lambda category, state: seen.append(category))

    dashboard.mount(start_threads=False)
    try:
        assert sorted(seen) == ["forecast", "sensors", "time"]
        dispose()
        hub.emit(INDOOR, "measure_noise", 41.0, "dB")
        dashboard.pump()
        assert len(seen) == 3
    finally:
        dashboard.teardown()


def test_insights_variant_polls_logs_and_skips_today(hub, insights_config, fixed_clock):
    for slot in insights_config.hub.slots:
        hub.logs[(device_uri(slot.device), slot.capability)] = SensorReading(12.34, "x")
    session = FakeSession(FakeResponse(payload=weatherbit_payload(6)))
    dashboard = _dashboard(insights_config, hub, session, fixed_clock)

    dashboard.mount(start_threads=False)
    try:
        view = dashboard.render()
        assert hub.listeners == {}
        assert _values(view, "indoor")["indoor_temperature"] == "12.3"
        assert _values(view, "indoor")["indoor_co2"] == "12"
        days = view["forecast"]["days"]
        assert len(days) == 5
        assert days[0]["timestamp"] == weatherbit_payload()["data"][1]["ts"]
        assert days[0]["label"] != "Heute"
        assert view["forecast"]["location"] == "Hamburg"
        assert dashboard.scheduler.get("forecast").interval == 172800
        assert dashboard.scheduler.get("sensors").interval == 300
    finally:
        dashboard.teardown()


def test_threaded_mount_and_teardown(hub, fixed_clock):
    config = make_config("live", clock={"interval": 1}, hub={"interval": 1})
    session = FakeSession(*[FakeResponse(payload=darksky_payload()) for _ in range(5)])
    dashboard = _dashboard(config, hub, session, fixed_clock)

    with dashboard.mounted_view():
        assert dashboard.mounted
        assert all(t.running for t in dashboard.scheduler.timers.values())
        assert dashboard.render()["clock"]["time"] == "07:05"

    assert not dashboard.mounted
    assert not any(t.running for t in dashboard.scheduler.timers.values())


def test_health_reports_timers_and_stamps(hub, live_config, fixed_clock):
    session = FakeSession(FakeResponse(payload=darksky_payload()))
    dashboard = _dashboard(live_config, hub, session, fixed_clock)
    dashboard.mount(start_threads=False)
    try:
        health = dashboard.health()
        assert health["mounted"] is True
        assert health["variant"] == "live"
        assert health["updated"]["forecast"] == FIXED_NOW.isoformat()
        assert health["timers"]["time"] == {"interval": 10.0, "runs": 1, "failures": 0}
    finally:
        dashboard.teardown()
    assert dashboard.health()["mounted"] is False


def test_timers_run_at_each_source_interval(hub, fixed_clock):
    config = make_config("insights", clock={"interval": 30}, forecast={"interval": 900})
    session = FakeSession(FakeResponse(payload=weatherbit_payload()))
    for slot in config.hub.slots:
        hub.logs[(device_uri(slot.device), slot.capability)] = SensorReading(1.0, "")
    dashboard = _dashboard(config, hub, session, fixed_clock)
    dashboard.mount(start_threads=False)
    try:
        timers = dashboard.scheduler.timers
        assert timers["time"].interval == dashboard.time_source.interval == 30
        assert timers["sensors"].interval == dashboard.feed.interval == 300
        assert timers["forecast"].interval == dashboard.provider.interval == 900
    finally:
        dashboard.teardown()


def test_every_source_shares_the_clock_timezone(hub):
    config = make_config("live", clock={"timezone": "Europe/Berlin"})
    dashboard = build_dashboard(config, hub, session=FakeSession())

    zones = {dashboard.time_source.tz, dashboard.feed.tz, dashboard.provider.tz}
    assert zones == {ZoneInfo("Europe/Berlin")}
