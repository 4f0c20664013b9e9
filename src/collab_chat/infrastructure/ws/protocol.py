"""WebSocket message envelope models."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from collab_chat.domain.entities.message import Message
from collab_chat.domain.entities.profile import Profile


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # ping | conversation.open | conversation.close | history.retry | message.send
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # pong | messages.snapshot | view.state | composer.state | notice | error
    data: dict[str, Any] = {}


class OpenConversationData(BaseModel):
    peer_id: str | None = None
    chatroom: bool = False


class SendData(BaseModel):
    content: str


class SenderOut(BaseModel):
    id: str
    display_name: str
    avatar_ref: str


class MessageOut(BaseModel):
    id: str
    conversation_key: str
    sender_id: str
    receiver_id: str | None
    content: str
    created_at: datetime
    status: str
    sender: SenderOut

    @classmethod
    def from_message(cls, message: Message, sender: Profile) -> MessageOut:
        profile = message.sender or sender
        return cls(
            id=message.id,
            conversation_key=message.conversation_key,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=message.content,
            created_at=message.created_at,
            status=message.status.value,
            sender=SenderOut(
                id=profile.id,
                display_name=profile.display_name,
                avatar_ref=profile.avatar_ref,
            ),
        )
