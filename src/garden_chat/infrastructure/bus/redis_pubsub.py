"""Redis Pub/Sub — publish side + subscriber background task."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from garden_chat.domain.entities.message import Message
from garden_chat.infrastructure.bus.serializer import deserialize_message, serialize_message

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.MessagePublisher."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def publish_message(self, message: Message) -> None:
        await self._redis.publish(self._channel, serialize_message(message))


OnMessageCallback = Callable[[Message], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and dispatches messages."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnMessageCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for item in pubsub.listen():
                if item["type"] != "message":
                    continue
                await self.dispatch(item["data"])
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()

    async def dispatch(self, raw: str | bytes) -> None:
        try:
            message = deserialize_message(raw)
            await self._callback(message)
        except Exception:
            logger.exception("Error processing pubsub message")
