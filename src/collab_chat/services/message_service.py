from __future__ import annotations

from uuid import UUID

from collab_chat.application.dto.principal import Principal
from collab_chat.application.exceptions import ValidationError
from collab_chat.application.ports.message_store import DurableMessageStore
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.target import ChatroomTarget, ConversationTarget, DirectTarget


def validate_content(content: str, max_length: int) -> str:
    """Return the trimmed content or raise ValidationError."""
    text = content.strip()
    if not text:
        raise ValidationError("Message cannot be empty")
    if len(text) > max_length:
        raise ValidationError(f"Message exceeds {max_length} characters")
    return text


def direct_target(principal: Principal, peer_id: str) -> DirectTarget:
    """Target for a conversation with ``peer_id``, in canonical UUID form."""
    try:
        peer_id = str(UUID(str(peer_id)))
    except ValueError as exc:
        raise ValidationError("peer_id must be a user id") from exc
    if peer_id == principal.user_id:
        raise ValidationError("Cannot message yourself")
    return DirectTarget(user_id=principal.user_id, peer_id=peer_id)


def content_limit(
    target: ConversationTarget, direct_limit: int, chatroom_limit: int,
) -> int:
    return chatroom_limit if isinstance(target, ChatroomTarget) else direct_limit


async def send_message(
    target: ConversationTarget,
    principal: Principal,
    content: str,
    max_length: int,
    store: DurableMessageStore,
) -> ConfirmedMessage:
    """Durable insert without the optimistic path, for plain HTTP clients."""
    text = validate_content(content, max_length)
    return await store.insert(target, principal.user_id, text)


async def list_messages(
    target: ConversationTarget,
    store: DurableMessageStore,
) -> list[ConfirmedMessage]:
    return await store.query(target)
