"""
Notification Sinks

Staff alert delivery: MockNotificationSink records alerts (development,
tests); WebSocketNotificationSink pushes them to a connected dashboard.
"""

from dinein.services.notifications.base import Alert, BaseNotificationSink
from dinein.services.notifications.mock import MockNotificationSink
from dinein.services.notifications.websocket import WebSocketNotificationSink

__all__ = [
    "Alert",
    "BaseNotificationSink",
    "MockNotificationSink",
    "WebSocketNotificationSink",
]
