"""
In-process Change Feed

Delivers events to subscribers in the same process, in publish order.
Used in development and tests. Handler errors are logged and never reach
the publisher.
"""

import logging
from collections import defaultdict
from typing import Any, Iterable, Optional

from dinein.services.realtime.base import (
    BaseChangeFeed,
    ChangeEvent,
    EventHandler,
    Subscription,
    normalize_events,
)

logger = logging.getLogger(__name__)


class MemorySubscription(Subscription):

    def __init__(self, feed: "MemoryChangeFeed", collection: str, handler: EventHandler, events: frozenset):
        self._feed = feed
        self.collection = collection
        self.handler = handler
        self.events = events
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def close(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)


class MemoryChangeFeed(BaseChangeFeed):
    """In-memory publish/subscribe."""

    def __init__(self):
        self._subscribers: dict[str, list[MemorySubscription]] = defaultdict(list)
        self.published: list[ChangeEvent] = []

    @property
    def provider_name(self) -> str:
        return "memory"

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, []))

    def _remove(self, subscription: MemorySubscription) -> None:
        subscribers = self._subscribers.get(subscription.collection, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    async def publish(self, collection: str, event: str, row: dict[str, Any]) -> None:
        change = ChangeEvent(collection=collection, event=event, new=dict(row))
        self.published.append(change)

        # Snapshot: handlers may unsubscribe while we iterate
        for subscription in list(self._subscribers.get(collection, [])):
            if not subscription.active or event not in subscription.events:
                continue
            try:
                await subscription.handler(change)
            except Exception:
                logger.exception(f"Change handler failed for {collection}/{event}")

    async def subscribe(
        self,
        collection: str,
        handler: EventHandler,
        events: Optional[Iterable[str]] = None,
    ) -> Subscription:
        subscription = MemorySubscription(self, collection, handler, normalize_events(events))
        self._subscribers[collection].append(subscription)
        logger.debug(f"Subscribed to {collection} ({sorted(subscription.events)})")
        return subscription

    async def health_check(self) -> bool:
        return True
