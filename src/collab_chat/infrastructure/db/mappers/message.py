from __future__ import annotations

from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.value_objects.keys import CHATROOM_KEY, conversation_key_for
from collab_chat.infrastructure.db.mappers.profile import model_to_profile
from collab_chat.infrastructure.db.models.chatroom_message import ChatroomMessageModel
from collab_chat.infrastructure.db.models.message import DirectMessageModel
from collab_chat.infrastructure.db.models.profile import ProfileModel


def direct_to_entity(
    model: DirectMessageModel, sender: ProfileModel | None = None,
) -> ConfirmedMessage:
    sender_id = str(model.sender_id)
    receiver_id = str(model.receiver_id)
    return ConfirmedMessage(
        id=str(model.id),
        conversation_key=conversation_key_for(sender_id, receiver_id),
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=model.content,
        created_at=model.created_at,
        sender=model_to_profile(sender) if sender is not None else None,
    )


def chatroom_to_entity(
    model: ChatroomMessageModel, sender: ProfileModel | None = None,
) -> ConfirmedMessage:
    return ConfirmedMessage(
        id=str(model.id),
        conversation_key=CHATROOM_KEY,
        sender_id=str(model.user_id),
        receiver_id=None,
        content=model.content,
        created_at=model.created_at,
        sender=model_to_profile(sender) if sender is not None else None,
    )
