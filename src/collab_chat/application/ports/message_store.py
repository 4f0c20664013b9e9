from __future__ import annotations

from typing import Protocol

from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.target import ConversationTarget


class DurableMessageStore(Protocol):
    async def insert(
        self, target: ConversationTarget, sender_id: str, content: str,
    ) -> ConfirmedMessage:
        """Persist a message. Raises DeliveryError on rejection or transport failure."""
        ...

    async def query(self, target: ConversationTarget) -> list[ConfirmedMessage]:
        """Full history, oldest first. Raises HistoryFetchError."""
        ...

    async def latest_per_peer(self, user_id: str) -> list[ConfirmedMessage]:
        """Most recent direct message for every peer ``user_id`` has talked to."""
        ...
