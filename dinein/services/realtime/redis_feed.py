"""
Redis Change Feed

Production change feed over Redis pub/sub. Each collection maps to one
channel, `<orders_channel>.<collection>`. Every subscription owns a
PubSub connection and a listener task; close() cancels the task and
unsubscribes.
"""

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, Iterable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from dinein.services.realtime.base import (
    BaseChangeFeed,
    ChangeEvent,
    EventHandler,
    Subscription,
    normalize_events,
)

logger = logging.getLogger(__name__)


class RedisSubscription(Subscription):

    def __init__(self, pubsub, task: asyncio.Task, channel: str):
        self._pubsub = pubsub
        self._task = task
        self.channel = channel

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def close(self) -> None:
        if self._task.done() and self._pubsub is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel)
                await self._pubsub.aclose()
            except RedisError as e:
                logger.warning(f"Error closing subscription to {self.channel}: {e}")
            self._pubsub = None
        logger.debug(f"Unsubscribed from {self.channel}")


class RedisChangeFeed(BaseChangeFeed):
    """Change feed on Redis pub/sub."""

    def __init__(self, redis_url: str, channel_prefix: str = "dinein.changes"):
        self.channel_prefix = channel_prefix
        self._redis = aioredis.Redis.from_url(redis_url, decode_responses=True)
        logger.info(f"RedisChangeFeed initialized (prefix={channel_prefix})")

    @property
    def provider_name(self) -> str:
        return "redis"

    def channel_for(self, collection: str) -> str:
        return f"{self.channel_prefix}.{collection}"

    async def publish(self, collection: str, event: str, row: dict[str, Any]) -> None:
        message = json.dumps({"event": event, "new": row}, default=str)
        await self._redis.publish(self.channel_for(collection), message)

    async def subscribe(
        self,
        collection: str,
        handler: EventHandler,
        events: Optional[Iterable[str]] = None,
    ) -> Subscription:
        wanted = normalize_events(events)
        channel = self.channel_for(collection)

        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(channel)

        task = asyncio.create_task(self._listen(pubsub, collection, handler, wanted))
        logger.debug(f"Subscribed to {channel} ({sorted(wanted)})")
        return RedisSubscription(pubsub, task, channel)

    async def _listen(self, pubsub, collection: str, handler: EventHandler, wanted: frozenset) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                payload = json.loads(message["data"])
            except (TypeError, ValueError):
                logger.warning(f"Dropping malformed change message on {collection}")
                continue

            event = payload.get("event")
            if event not in wanted:
                continue

            try:
                await handler(ChangeEvent(collection=collection, event=event, new=payload.get("new") or {}))
            except Exception:
                logger.exception(f"Change handler failed for {collection}/{event}")

    async def health_check(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._redis.aclose()
