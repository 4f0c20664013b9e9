from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from collab_chat.api.deps import CurrentPrincipal, MessageStoreDep, ProfilesDep
from collab_chat.api.v1.schemas.conversation import ConversationResponse
from collab_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from collab_chat.config import settings
from collab_chat.services import conversation_service, message_service

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    messages: MessageStoreDep,
    profiles: ProfilesDep,
) -> list[ConversationResponse]:
    summaries = await conversation_service.list_user_conversations(
        principal.user_id, messages, profiles,
    )
    return [ConversationResponse.model_validate(s) for s in summaries]


@router.get("/{peer_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    peer_id: UUID,
    principal: CurrentPrincipal,
    messages: MessageStoreDep,
) -> list[MessageResponse]:
    target = message_service.direct_target(principal, str(peer_id))
    history = await message_service.list_messages(target, messages)
    return [MessageResponse.from_entity(m) for m in history]


@router.post("/{peer_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    peer_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    messages: MessageStoreDep,
) -> MessageResponse:
    target = message_service.direct_target(principal, str(peer_id))
    msg = await message_service.send_message(
        target, principal, body.content, settings.MAX_MESSAGE_LENGTH, messages,
    )
    return MessageResponse.from_entity(msg)
