"""
Change Feed Abstract Base Class

Defines the realtime channel that carries insert/update/delete events for
data store collections. The data store publishes; staff views subscribe.

Delivery order across different writers is whatever the backend provides,
so subscribers should re-read current state instead of applying deltas.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional

EVENTS = ("insert", "update", "delete")


@dataclass
class ChangeEvent:
    """One committed write on a collection."""
    collection: str
    event: str
    new: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"collection": self.collection, "event": self.event, "new": self.new}


EventHandler = Callable[[ChangeEvent], Awaitable[None]]


class Subscription(ABC):
    """Handle returned by subscribe(); close it to stop receiving events."""

    @property
    @abstractmethod
    def active(self) -> bool:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the subscription. Safe to call more than once."""
        pass


class BaseChangeFeed(ABC):
    """Abstract base class for change feed backends."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def publish(self, collection: str, event: str, row: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def subscribe(
        self,
        collection: str,
        handler: EventHandler,
        events: Optional[Iterable[str]] = None,
    ) -> Subscription:
        """
        Deliver matching events on `collection` to `handler`.

        Args:
            collection: Collection name, e.g. "orders"
            handler: Coroutine called once per event
            events: Event names to receive (default: all)
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def close(self) -> None:
        return None


def normalize_events(events: Optional[Iterable[str]]) -> frozenset[str]:
    wanted = frozenset(events) if events is not None else frozenset(EVENTS)
    unknown = wanted - set(EVENTS)
    if unknown:
        raise ValueError(f"Unknown change events: {sorted(unknown)}")
    return wanted
