"""Conversation keys and local placeholder identities."""
from __future__ import annotations

import uuid
from typing import NewType

ConversationKey = NewType("ConversationKey", str)

CHATROOM_KEY = ConversationKey("chatroom")
LOCAL_ID_PREFIX = "local-"


def conversation_key_for(user_a: str, user_b: str) -> ConversationKey:
    """Deterministic key for the unordered pair of participants."""
    first, second = sorted((str(user_a), str(user_b)))
    return ConversationKey(f"dm:{first}:{second}")


def new_local_id() -> str:
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_local_id(message_id: str) -> bool:
    return message_id.startswith(LOCAL_ID_PREFIX)
