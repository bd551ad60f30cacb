"""
WebSocket Notification Sink

Forwards alerts and sound cues to a connected staff dashboard as JSON
messages. The browser side shows the system notification and plays the
sound; permission is what the dashboard reported when it connected.

Messages:
    {"type": "alert", "title": "...", "body": "...", "tag": "new-order"}
    {"type": "sound", "src": "/notification.mp3"}
"""

import logging

from fastapi import WebSocket

from dinein.services.notifications.base import Alert, BaseNotificationSink

logger = logging.getLogger(__name__)


class WebSocketNotificationSink(BaseNotificationSink):
    """Notification sink bound to one staff WebSocket connection."""

    def __init__(self, websocket: WebSocket, permission_granted: bool):
        self.websocket = websocket
        self.permission_granted = permission_granted

    @property
    def provider_name(self) -> str:
        return "websocket"

    async def request_permission(self) -> bool:
        return self.permission_granted

    async def show(self, alert: Alert) -> None:
        await self.websocket.send_json({
            "type": "alert",
            "title": alert.title,
            "body": alert.body,
            "tag": alert.tag,
        })

    async def play_sound(self, cue: str) -> None:
        await self.websocket.send_json({"type": "sound", "src": cue})
