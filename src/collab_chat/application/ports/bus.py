from __future__ import annotations

from typing import Any, Callable, Protocol

from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.events.message_inserted import MessageInserted


class EventPublisher(Protocol):
    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...


EventPredicate = Callable[[ConfirmedMessage], bool]
OnInserted = Callable[[MessageInserted], None]
OnDrop = Callable[[], None]


class ChannelHandle(Protocol):
    @property
    def closed(self) -> bool: ...


class PushChannel(Protocol):
    async def open_channel(
        self,
        predicate: EventPredicate,
        on_event: OnInserted,
        on_drop: OnDrop | None = None,
    ) -> ChannelHandle:
        """Start delivering matching insert events. Raises ChannelError."""
        ...

    async def close_channel(self, handle: ChannelHandle) -> None:
        """Stop delivery. Closing twice is a no-op."""
        ...
