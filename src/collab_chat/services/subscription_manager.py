"""Push-channel lifecycle for one mounted conversation view."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from collab_chat.application.ports.bus import ChannelHandle, OnDrop, PushChannel
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.target import ConversationTarget
from collab_chat.domain.events.message_inserted import MessageInserted
from collab_chat.domain.value_objects.enums import DeliveryOutcome
from collab_chat.services.deduplicator import DeliveryDeduplicator

logger = logging.getLogger(__name__)

OnMessage = Callable[[DeliveryOutcome, ConfirmedMessage], None]


@dataclass(eq=False, slots=True)
class SubscriptionHandle:
    target: ConversationTarget
    channel: ChannelHandle | None = None
    closed: bool = False


class SubscriptionManager:
    """Holds at most one live subscription at a time.

    Subscribing again tears the previous subscription down first. Every event
    goes through the deduplicator before ``on_message`` sees it.
    """

    def __init__(
        self,
        push_channel: PushChannel,
        deduplicator: DeliveryDeduplicator,
    ) -> None:
        self._push = push_channel
        self._deduplicator = deduplicator
        self._active: SubscriptionHandle | None = None

    @property
    def active(self) -> SubscriptionHandle | None:
        return self._active

    async def subscribe(
        self,
        target: ConversationTarget,
        on_message: OnMessage,
        on_drop: OnDrop | None = None,
    ) -> SubscriptionHandle:
        """Open a channel filtered to ``target``. Raises ChannelError."""
        if self._active is not None:
            await self.unsubscribe(self._active)

        handle = SubscriptionHandle(target=target)
        self._active = handle
        key = target.key

        def _on_event(event: MessageInserted) -> None:
            if handle.closed:
                return
            outcome = self._deduplicator.deliver(event.message)
            on_message(outcome, event.message)

        def _on_drop() -> None:
            if not handle.closed and on_drop is not None:
                on_drop()

        try:
            channel = await self._push.open_channel(
                lambda message: message.conversation_key == key,
                _on_event,
                _on_drop,
            )
        except BaseException:
            handle.closed = True
            if self._active is handle:
                self._active = None
            raise

        handle.channel = channel
        if handle.closed:
            # superseded while the channel was opening
            await self._push.close_channel(channel)
        else:
            logger.debug("Subscribed to %s", key)
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        if handle.closed:
            return
        handle.closed = True
        if self._active is handle:
            self._active = None
        if handle.channel is not None:
            await self._push.close_channel(handle.channel)
        logger.debug("Unsubscribed from %s", handle.target.key)

    async def close(self) -> None:
        if self._active is not None:
            await self.unsubscribe(self._active)

    @asynccontextmanager
    async def subscription(
        self,
        target: ConversationTarget,
        on_message: OnMessage,
        on_drop: OnDrop | None = None,
    ) -> AsyncIterator[SubscriptionHandle]:
        handle = await self.subscribe(target, on_message, on_drop)
        try:
            yield handle
        finally:
            await self.unsubscribe(handle)
