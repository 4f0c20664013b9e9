from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from collab_chat.domain.value_objects.keys import (
    CHATROOM_KEY,
    ConversationKey,
    conversation_key_for,
)


@dataclass(frozen=True, slots=True)
class DirectTarget:
    """One-to-one conversation seen from ``user_id``'s side."""

    user_id: str
    peer_id: str

    @property
    def key(self) -> ConversationKey:
        return conversation_key_for(self.user_id, self.peer_id)

    @property
    def receiver_id(self) -> str | None:
        return self.peer_id


@dataclass(frozen=True, slots=True)
class ChatroomTarget:
    """The global community chatroom."""

    @property
    def key(self) -> ConversationKey:
        return CHATROOM_KEY

    @property
    def receiver_id(self) -> str | None:
        return None


ConversationTarget = Union[DirectTarget, ChatroomTarget]
