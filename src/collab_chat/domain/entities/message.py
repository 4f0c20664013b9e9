"""Message variants held by the conversation store.

Every message entering the store is either a ``PendingMessage`` (optimistic,
local placeholder id) or a ``ConfirmedMessage`` (durable row). Raw rows and
push payloads are normalised into one of these at the boundary.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Union

from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.value_objects.enums import MessageStatus
from collab_chat.domain.value_objects.keys import ConversationKey


@dataclass(frozen=True, slots=True)
class PendingMessage:
    id: str
    conversation_key: ConversationKey
    sender_id: str
    receiver_id: str | None
    content: str
    created_at: datetime
    status: MessageStatus = MessageStatus.PENDING
    sender: Profile | None = None

    def failed(self) -> PendingMessage:
        return replace(self, status=MessageStatus.FAILED)


@dataclass(frozen=True, slots=True)
class ConfirmedMessage:
    id: str
    conversation_key: ConversationKey
    sender_id: str
    receiver_id: str | None
    content: str
    created_at: datetime
    sender: Profile | None = None

    @property
    def status(self) -> MessageStatus:
        return MessageStatus.CONFIRMED

    def with_sender(self, sender: Profile | None) -> ConfirmedMessage:
        return replace(self, sender=sender)


Message = Union[PendingMessage, ConfirmedMessage]
