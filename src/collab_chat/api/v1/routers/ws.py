from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from collab_chat.api.deps import MessageStoreDep, ProfilesDep, PushChannelDep, get_verifier
from collab_chat.application.dto.principal import Principal
from collab_chat.application.ports.profiles import ProfileLookup
from collab_chat.config import settings
from collab_chat.domain.entities.profile import Profile
from collab_chat.infrastructure.ws.session import SessionLimits, WsChatSession

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


def session_limits() -> SessionLimits:
    return SessionLimits(
        max_message_length=settings.MAX_MESSAGE_LENGTH,
        max_chatroom_message_length=settings.MAX_CHATROOM_MESSAGE_LENGTH,
        match_window_seconds=settings.PENDING_MATCH_WINDOW_SECONDS,
        poll_interval_seconds=settings.FALLBACK_POLL_SECONDS,
        heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
    )


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


async def _own_profile(profiles: ProfileLookup, user_id: str) -> Profile:
    try:
        profile = await profiles.get_profile(user_id)
    except Exception:
        logger.exception("Could not load profile for %s", user_id)
        profile = None
    return profile or Profile.unknown(user_id)


@router.websocket("/ws/messages")
async def ws_messages(
    websocket: WebSocket,
    messages: MessageStoreDep,
    profiles: ProfilesDep,
    push_channel: PushChannelDep,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.accept()
    session = WsChatSession(
        websocket,
        principal,
        message_store=messages,
        push_channel=push_channel,
        profiles=profiles,
        sender_profile=await _own_profile(profiles, principal.user_id),
        limits=session_limits(),
    )
    try:
        await session.run()
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.principal_key)
