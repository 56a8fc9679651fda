"""Data source implementations for the dashboard.

Importing this package registers all built-in forecast providers and hub
sensor feeds.
"""

from sources.time_source import TimeSource
from sources.forecast_source import (
    DarkSkyProvider,
    DemoForecastProvider,
    ForecastError,
    ForecastProvider,
    WeatherbitProvider,
)
from sources.hub_source import HubSensorFeed, InsightSensorFeed, LiveSensorFeed

__all__ = [
    "TimeSource",
    "ForecastError",
    "ForecastProvider",
    "DarkSkyProvider",
    "WeatherbitProvider",
    "DemoForecastProvider",
    "HubSensorFeed",
    "LiveSensorFeed",
    "InsightSensorFeed",
]
