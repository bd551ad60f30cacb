"""
Notification Sink Abstract Base Class

Defines how staff clients are alerted about new orders: a permission gate,
a visual alert with a title and body, and an audible cue.

All calls are fire-and-forget. Callers log and ignore any failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class Alert:
    """A visual alert shown to staff."""
    title: str
    body: str
    tag: Optional[str] = None


class BaseNotificationSink(ABC):
    """Abstract base class for notification sinks."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask the staff client whether alerts may be shown."""
        pass

    @abstractmethod
    async def show(self, alert: Alert) -> None:
        """Show a visual alert."""
        pass

    @abstractmethod
    async def play_sound(self, cue: str) -> None:
        """Play an audible cue."""
        pass
