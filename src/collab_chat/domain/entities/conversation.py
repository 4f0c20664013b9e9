from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.value_objects.keys import ConversationKey


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """Entry of the conversation list: peer identity plus latest message."""

    conversation_key: ConversationKey
    peer: Profile
    last_message: str | None
    last_message_at: datetime | None
    is_outgoing: bool = False
