"""Home Dashboard - Configuration defaults

Everything here can be overridden from dashboard.yaml (see core/settings.py).
Secrets are never stored here; they come from the YAML file or from the
environment:

  HOMEY_URL        base URL of the hub, e.g. http://192.168.1.20
  HOMEY_TOKEN      bearer token of an authenticated hub session
  WEATHER_API_KEY  API key of the forecast provider

Variants:
  live      push model: device capabilities with change listeners,
            provider A (Dark Sky shaped) forecast every 5 minutes
  insights  pull model: latest insight-log entry per capability,
            provider B (Weatherbit shaped) forecast every 2 days
"""

# ---------------------------------------------------------------------------
# Refresh periods (seconds)
# ---------------------------------------------------------------------------
TIME_INTERVAL = 10

# ---------------------------------------------------------------------------
# Variant presets
# ---------------------------------------------------------------------------
VARIANTS = {
    "live": {
        "hub_mode": "live",
        "provider": "darksky",
        "sensor_interval": 60,
        "forecast_interval": 300,
        "forecast_offset": 0,
        "today_label": "Heute",
    },
    "insights": {
        "hub_mode": "insights",
        "provider": "weatherbit",
        "sensor_interval": 300,
        "forecast_interval": 172800,  # 2 days
        "forecast_offset": 1,
        "today_label": None,
    },
}

DEFAULT_VARIANT = "live"

# ---------------------------------------------------------------------------
# Hub devices
# ---------------------------------------------------------------------------
INDOOR_DEVICE_ID = "fad84db7-eb87-4110-bb60-38d658933797"
OUTDOOR_DEVICE_ID = "7df4300e-4280-4d06-84f0-f47d6923f87a"

# Display slots: one per (device, capability) pair
SENSOR_SLOTS = [
    {
        "slot": "indoor_temperature",
        "device": INDOOR_DEVICE_ID,
        "capability": "measure_temperature",
        "label": "Temperature",
        "group": "indoor",
        "decimals": 1,
    },
    {
        "slot": "indoor_co2",
        "device": INDOOR_DEVICE_ID,
        "capability": "measure_co2",
        "label": "CO2",
        "group": "indoor",
        "decimals": 0,
    },
    {
        "slot": "indoor_humidity",
        "device": INDOOR_DEVICE_ID,
        "capability": "measure_humidity",
        "label": "Humidity",
        "group": "indoor",
        "decimals": 0,
    },
    {
        "slot": "indoor_noise",
        "device": INDOOR_DEVICE_ID,
        "capability": "measure_noise",
        "label": "Noise",
        "group": "indoor",
        "decimals": 0,
    },
    {
        "slot": "outdoor_temperature",
        "device": OUTDOOR_DEVICE_ID,
        "capability": "measure_temperature",
        "label": "Temperature",
        "group": "outdoor",
        "decimals": 1,
    },
    {
        "slot": "outdoor_humidity",
        "device": OUTDOOR_DEVICE_ID,
        "capability": "measure_humidity",
        "label": "Humidity",
        "group": "outdoor",
        "decimals": 0,
    },
]

HUB_TIMEOUT = 10
HUB_WATCH_INTERVAL = 5.0  # change detection for push listeners over HTTP
HUB_MAX_WORKERS = 6       # concurrent insight-log lookups

# ---------------------------------------------------------------------------
# Forecast providers
# ---------------------------------------------------------------------------
PROVIDERS = {
    "darksky": {
        "base_url": "https://api.darksky.net",
        "icons": "ui/mappings/darksky.yaml",
    },
    "weatherbit": {
        "base_url": "https://api.weatherbit.io",
        "icons": "ui/mappings/weatherbit.yaml",
        "lang": "de",
        "days": 6,
    },
    "demo": {
        "base_url": "",
        "icons": "ui/mappings/darksky.yaml",
    },
}

MOON_PHASES = "ui/mappings/moonphases.yaml"

LATITUDE = 53.56
LONGITUDE = 9.96

FORECAST_DAYS_SHOWN = 5
FORECAST_TIMEOUT = 15
CORS_PROXY = ""  # e.g. "https://cors-anywhere.herokuapp.com/"

# ---------------------------------------------------------------------------
# Clock and display formats
# ---------------------------------------------------------------------------
LOCALE = "de"

# Two-letter weekday abbreviations, Monday first
WEEKDAYS = {
    "de": ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"],
    "en": ["Mo", "Tu", "We", "Th", "Fr", "Sa", "Su"],
}

DATE_FORMAT = "{weekday}, %d.%m.%Y"
TIME_FORMAT = "%H:%M"
FORECAST_DATE_FORMAT = "%d.%m.%Y"
LAST_UPDATED_FORMAT = "%d/%m %H:%M:%S"

# ---------------------------------------------------------------------------
# Web server
# ---------------------------------------------------------------------------
HOST = "0.0.0.0"
PORT = 5000
