"""Hub access for the dashboard: the HTTP client and a simulated hub."""

from hub.client import (
    CapabilityWatcher,
    HubClient,
    HubDevice,
    HubError,
    RestHubClient,
    device_uri,
)
from hub.demo import DemoHubClient

__all__ = [
    "CapabilityWatcher",
    "DemoHubClient",
    "HubClient",
    "HubDevice",
    "HubError",
    "RestHubClient",
    "device_uri",
]
