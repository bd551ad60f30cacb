"""
Mock Notification Sink

Records alerts and sound cues instead of delivering them.
Used in development and tests.
"""

import logging

from dinein.services.notifications.base import Alert, BaseNotificationSink

logger = logging.getLogger(__name__)


class MockNotificationSink(BaseNotificationSink):
    """Notification sink that keeps everything in memory."""

    def __init__(self, permission: bool = True, fail: bool = False):
        self.permission = permission
        self.fail = fail
        self.permission_requests = 0
        self.alerts: list[Alert] = []
        self.sounds: list[str] = []
        logger.info(f"MockNotificationSink initialized (permission={permission})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.permission

    async def show(self, alert: Alert) -> None:
        if self.fail:
            raise RuntimeError("Simulated alert failure")
        self.alerts.append(alert)
        logger.info(f"Mock alert: {alert.title} - {alert.body}")

    async def play_sound(self, cue: str) -> None:
        if self.fail:
            raise RuntimeError("Simulated sound failure")
        self.sounds.append(cue)
        logger.info(f"Mock sound: {cue}")
