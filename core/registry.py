"""Data source registries for the dashboard.

Register forecast providers and hub sensor feeds by name. The dashboard
reads its configuration and instantiates the right classes by looking
them up here.

Usage:
    @register_provider("darksky")
    class DarkSkyProvider(ForecastProvider):
        ...

    @register_feed("insights")
    class InsightSensorFeed(DataSource):
        ...
"""

import logging

logger = logging.getLogger(__name__)

PROVIDER_REGISTRY = {}
FEED_REGISTRY = {}


def register_provider(name):
    """Decorator to register a forecast provider class by name."""
    def decorator(cls):
        PROVIDER_REGISTRY[name] = cls
        logger.debug("Registered forecast provider: %s -> %s", name, cls.__name__)
        return cls
    return decorator


def register_feed(name):
    """Decorator to register a hub sensor feed class by mode name."""
    def decorator(cls):
        FEED_REGISTRY[name] = cls
        logger.debug("Registered sensor feed: %s -> %s", name, cls.__name__)
        return cls
    return decorator
