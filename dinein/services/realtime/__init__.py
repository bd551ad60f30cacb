"""
Change Feed Factory

Returns the in-process or Redis change feed based on configuration.
"""

import logging

from dinein.core.config import Settings
from dinein.services.realtime.base import (
    BaseChangeFeed,
    ChangeEvent,
    EventHandler,
    Subscription,
)
from dinein.services.realtime.mock import MemoryChangeFeed
from dinein.services.realtime.redis_feed import RedisChangeFeed

logger = logging.getLogger(__name__)


def create_change_feed(settings: Settings) -> BaseChangeFeed:
    """Create the configured change feed."""
    if settings.resolved_feed_backend == "memory":
        logger.info("Change Feed: Using MemoryChangeFeed (in-process)")
        return MemoryChangeFeed()

    logger.info(f"Change Feed: Using RedisChangeFeed ({settings.env_mode.value} mode)")
    return RedisChangeFeed(settings.redis_url, channel_prefix=settings.orders_channel)


__all__ = [
    "create_change_feed",
    "BaseChangeFeed",
    "ChangeEvent",
    "EventHandler",
    "Subscription",
    "MemoryChangeFeed",
    "RedisChangeFeed",
]
