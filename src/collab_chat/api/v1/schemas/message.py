from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from collab_chat.api.v1.schemas.common import ProfileResponse
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.profile import Profile


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: str
    conversation_key: str
    sender_id: str
    receiver_id: str | None
    content: str
    created_at: datetime
    sender: ProfileResponse

    model_config = {"from_attributes": True}

    @classmethod
    def from_entity(cls, message: ConfirmedMessage) -> MessageResponse:
        sender = message.sender or Profile.unknown(message.sender_id)
        return cls(
            id=message.id,
            conversation_key=message.conversation_key,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=message.content,
            created_at=message.created_at,
            sender=ProfileResponse.model_validate(sender),
        )
