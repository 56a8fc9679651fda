#!/usr/bin/env python3
"""Home Dashboard — Web display mode.

Serves the wall-mounted dashboard (clock, indoor/outdoor climate from the
hub, multi-day forecast) as a single page, plus a JSON view model and an
SSE stream that tells the page when something changed.

Usage:
    python3 web_app.py                       # settings from dashboard.yaml
    python3 web_app.py --variant insights    # polled insight logs, provider B
    python3 web_app.py --demo                # simulated hub and forecast
    python3 web_app.py --port 8080 --log-level DEBUG
"""

__version__ = "1.0.0"

import argparse
import json
import logging
import sys

from flask import Flask, Response, jsonify, render_template
from flask_cors import CORS

import config as defaults
from core.dashboard import Dashboard, build_dashboard
from core.settings import ConfigError, DashboardConfig, get_config
from core.state import DisplayState
from core.web_event_bus import WebEventBus
from hub import DemoHubClient, HubClient, HubError, RestHubClient
from ui import STATIC_DIR, TEMPLATES_DIR

logger = logging.getLogger(__name__)


def create_app(dashboard: Dashboard, web_bus: WebEventBus = None) -> Flask:
    """Create and configure the Flask application around a dashboard."""
    app = Flask(
        __name__,
        template_folder=str(TEMPLATES_DIR),
        static_folder=str(STATIC_DIR),
    )
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    web_bus = web_bus or WebEventBus()

    def on_change(category: str, state: DisplayState):
        stamp = state.last_updated(category)
        web_bus.publish(category, {
            "category": category,
            "updated": stamp.isoformat() if stamp else None,
        })

    app.extensions["dashboard"] = dashboard
    app.extensions["web_bus"] = web_bus
    app.extensions["dashboard_listener"] = dashboard.add_listener(on_change)

    # ─── Routes: UI ───

    @app.route("/")
    def index():
        return render_template("index.html", view=dashboard.render(), version=__version__)

    # ─── Routes: API ───

    @app.route("/api/dashboard")
    def dashboard_view():
        """Current view model as JSON."""
        return jsonify(dashboard.render())

    @app.route("/api/health")
    def health():
        status = dashboard.health()
        status["web_clients"] = web_bus.client_count
        return jsonify(status), (200 if status["mounted"] else 503)

    @app.route("/api/stream")
    def stream():
        """SSE endpoint: one event per applied update."""
        def generate():
            for topic, payload in web_bus.sse_stream():
                if topic == "keepalive":
                    yield ": keepalive\n\n"
                    continue
                yield f"event: {topic}\ndata: {json.dumps(payload)}\n\n"

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    return app


def build_hub(config: DashboardConfig) -> HubClient:
    if config.demo:
        return DemoHubClient(watch_interval=config.hub.watch_interval)
    return RestHubClient(
        config.hub.url,
        config.hub.token,
        timeout=config.hub.timeout,
        watch_interval=config.hub.watch_interval,
    )


def check_hub(hub: HubClient, config: DashboardConfig):
    """Resolve every configured device once. Raises HubError."""
    for device_id in dict.fromkeys(slot.device for slot in config.hub.slots):
        device = hub.get_device(device_id)
        logger.info("Hub device %s: %s", device_id, device.name or "(unnamed)")


def setup_logging(level_name: str) -> None:
    """Configure root logger with a consistent format."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Home Dashboard web display")
    parser.add_argument("--config", default="dashboard.yaml",
                        help="Path to dashboard YAML config (default: dashboard.yaml)")
    parser.add_argument("--variant", choices=sorted(defaults.VARIANTS),
                        help="Override the variant preset from the config file")
    parser.add_argument("--demo", action="store_true",
                        help="Use a simulated hub and forecast")
    parser.add_argument("--host", default=defaults.HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=defaults.PORT, help="Web server port")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Set the logging verbosity (default: INFO)")
    parser.add_argument("--version", action="version",
                        version=f"Home Dashboard {__version__}")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger.info("Home Dashboard v%s starting", __version__)

    try:
        config = get_config(args.config, variant=args.variant, demo=args.demo)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    hub = build_hub(config)
    if config.hub.mode == "live" and not config.demo:
        try:
            check_hub(hub, config)
        except HubError as exc:
            logger.error("Cannot reach hub at %s: %s", config.hub.url, exc)
            hub.close()
            return 1

    dashboard = build_dashboard(config, hub)
    try:
        dashboard.mount()
        app = create_app(dashboard)
        logger.info("Dashboard at http://%s:%d", args.host, args.port)
        app.run(host=args.host, port=args.port, threaded=True, debug=False)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        dashboard.teardown()
        hub.close()
        logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
