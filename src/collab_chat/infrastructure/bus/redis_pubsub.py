"""Redis Pub/Sub: publish side and push channel fan-out."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis

from collab_chat.application.exceptions import ChannelError
from collab_chat.application.ports.bus import EventPredicate, OnDrop, OnInserted
from collab_chat.domain.events.message_inserted import MESSAGE_INSERTED, MessageInserted
from collab_chat.infrastructure.bus.serializer import (
    deserialize_event,
    payload_to_message,
    serialize_event,
)

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        raw = serialize_event(payload.get("event_type", "unknown"), payload)
        await self._redis.publish(channel, raw)


@dataclass(eq=False)
class _Listener:
    predicate: EventPredicate
    on_event: OnInserted
    on_drop: OnDrop | None
    closed: bool = False


class RedisPushChannel:
    """Implements application.ports.bus.PushChannel.

    One background task holds the Redis subscription for the whole process and
    fans every ``message.inserted`` event out to the listeners whose predicate
    matches. When the connection is lost every listener is dropped (its
    ``on_drop`` fires) and the task reconnects after ``reconnect_delay``.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        *,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._reconnect_delay = reconnect_delay
        self._listeners: set[_Listener] = set()
        self._connected = False
        self._task: asyncio.Task[None] | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-push-channel")
        logger.info("Redis push channel started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis push channel stopped")
        for listener in self._listeners:
            listener.closed = True
        self._listeners.clear()

    async def open_channel(
        self,
        predicate: EventPredicate,
        on_event: OnInserted,
        on_drop: OnDrop | None = None,
    ) -> _Listener:
        if self._task is None or self._task.done():
            raise ChannelError("Push channel is not running")
        if not self._connected:
            raise ChannelError("Push channel is reconnecting")
        listener = _Listener(predicate, on_event, on_drop)
        self._listeners.add(listener)
        return listener

    async def close_channel(self, handle: _Listener) -> None:
        handle.closed = True
        self._listeners.discard(handle)

    def dispatch(self, event_type: str, data: dict[str, Any]) -> int:
        """Deliver one decoded event. Returns the number of listeners reached."""
        if event_type != MESSAGE_INSERTED:
            return 0
        try:
            message = payload_to_message(data)
        except ValueError:
            logger.warning("Discarding malformed %s payload", event_type, exc_info=True)
            return 0

        event = MessageInserted(message)
        delivered = 0
        for listener in list(self._listeners):
            if listener.closed or not listener.predicate(message):
                continue
            try:
                listener.on_event(event)
                delivered += 1
            except Exception:
                logger.exception("Push listener failed for message %s", message.id)
        return delivered

    async def _listen(self) -> None:
        while True:
            try:
                await self._consume()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Pub/Sub connection lost, retrying in %.0fs", self._reconnect_delay,
                )
            self._drop_listeners()
            await asyncio.sleep(self._reconnect_delay)

    async def _consume(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        self._connected = True
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event_type, data = deserialize_event(message["data"])
                    self.dispatch(event_type, data)
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            self._connected = False
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()

    def _drop_listeners(self) -> None:
        listeners, self._listeners = self._listeners, set()
        for listener in listeners:
            listener.closed = True
            if listener.on_drop is not None:
                listener.on_drop()
