from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from collab_chat.api.v1.schemas.common import ProfileResponse


class ConversationResponse(BaseModel):
    conversation_key: str
    peer: ProfileResponse
    last_message: str | None
    last_message_at: datetime | None
    is_outgoing: bool

    model_config = {"from_attributes": True}
