from __future__ import annotations

from fastapi import APIRouter

from collab_chat.api.deps import CurrentPrincipal, MessageStoreDep
from collab_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from collab_chat.config import settings
from collab_chat.domain.entities.target import ChatroomTarget
from collab_chat.services import message_service

router = APIRouter(prefix="/api/v1/chatroom", tags=["chatroom"])


@router.get("/messages", response_model=list[MessageResponse])
async def list_messages(
    principal: CurrentPrincipal,
    messages: MessageStoreDep,
) -> list[MessageResponse]:
    history = await message_service.list_messages(ChatroomTarget(), messages)
    return [MessageResponse.from_entity(m) for m in history]


@router.post("/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    messages: MessageStoreDep,
) -> MessageResponse:
    msg = await message_service.send_message(
        ChatroomTarget(),
        principal,
        body.content,
        settings.MAX_CHATROOM_MESSAGE_LENGTH,
        messages,
    )
    return MessageResponse.from_entity(msg)
