"""One WebSocket connection = one client session with its own store and view."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Coroutine

from fastapi import WebSocket
from pydantic import ValidationError as PydanticValidationError

from collab_chat.application.dto.composer import ComposerState
from collab_chat.application.dto.principal import Principal
from collab_chat.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from collab_chat.application.ports.bus import PushChannel
from collab_chat.application.ports.clock import Clock
from collab_chat.application.ports.message_store import DurableMessageStore
from collab_chat.application.ports.profiles import ProfileLookup
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.entities.target import ChatroomTarget, ConversationTarget, DirectTarget
from collab_chat.domain.value_objects.enums import DeliveryOutcome, NoticeVariant
from collab_chat.domain.value_objects.keys import ConversationKey
from collab_chat.infrastructure.ws.protocol import (
    MessageOut,
    OpenConversationData,
    SendData,
    WsInbound,
    WsOutbound,
)
from collab_chat.services.conversation_store import ConversationStore
from collab_chat.services.conversation_view import ConversationView
from collab_chat.services.deduplicator import DeliveryDeduplicator
from collab_chat.services.message_service import direct_target
from collab_chat.services.send_coordinator import OptimisticSendCoordinator
from collab_chat.services.subscription_manager import SubscriptionManager

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[type[AppError], str] = {
    ValidationError: "validation_error",
    ConflictError: "conflict",
    NotFoundError: "not_found",
    ForbiddenError: "forbidden",
}


@dataclass(frozen=True, slots=True)
class SessionLimits:
    max_message_length: int = 1000
    max_chatroom_message_length: int = 1000
    match_window_seconds: float = 15.0
    poll_interval_seconds: float = 30.0
    heartbeat_seconds: float = 30.0


@dataclass(frozen=True, slots=True)
class _SnapshotRequest:
    key: ConversationKey


class WsChatSession:
    """Wires store, deduplicator, coordinator and view for one connection.

    Everything that wants to talk to the client enqueues synchronously; a
    single writer task drains the queue. Snapshot requests are coalesced so a
    history load of N messages produces one frame.
    """

    def __init__(
        self,
        websocket: WebSocket,
        principal: Principal,
        *,
        message_store: DurableMessageStore,
        push_channel: PushChannel,
        profiles: ProfileLookup | None = None,
        sender_profile: Profile | None = None,
        limits: SessionLimits | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._ws = websocket
        self._principal = principal
        self._limits = limits or SessionLimits()
        self._outbox: asyncio.Queue[WsOutbound | _SnapshotRequest] = asyncio.Queue()
        self._dirty: set[ConversationKey] = set()
        self._tasks: set[asyncio.Task[None]] = set()

        self.store = ConversationStore(on_change=self._on_store_change)
        deduplicator = DeliveryDeduplicator(
            self.store,
            clock,
            timedelta(seconds=self._limits.match_window_seconds),
        )
        self.composer = ComposerState(on_change=self._on_composer_change)
        coordinator = OptimisticSendCoordinator(
            self.store,
            deduplicator,
            message_store,
            self,
            clock=clock,
            max_length=self._limits.max_message_length,
            max_chatroom_length=self._limits.max_chatroom_message_length,
            sender_profile=sender_profile,
        )
        self.view = ConversationView(
            user_id=principal.user_id,
            store=self.store,
            deduplicator=deduplicator,
            coordinator=coordinator,
            subscriptions=SubscriptionManager(push_channel, deduplicator),
            message_store=message_store,
            profiles=profiles,
            poll_interval=self._limits.poll_interval_seconds,
            on_change=self._on_view_change,
            on_message=self._on_push_message,
        )
        if sender_profile is not None:
            self.view.profiles[principal.user_id] = sender_profile

    # -- Notifier -----------------------------------------------------------

    def notify(
        self,
        title: str,
        description: str,
        variant: NoticeVariant = NoticeVariant.DEFAULT,
    ) -> None:
        self.emit("notice", {"title": title, "description": description, "variant": variant.value})

    def emit(self, event_type: str, data: dict[str, Any]) -> None:
        self._outbox.put_nowait(WsOutbound(type=event_type, data=data))

    # -- lifecycle ----------------------------------------------------------

    async def run(self) -> None:
        """Serve the connection until the client goes away."""
        self.store.init()
        writer = asyncio.create_task(self._write_loop(), name=f"ws-writer-{self._principal.principal_key}")
        heartbeat = asyncio.create_task(self._heartbeat(), name=f"ws-heartbeat-{self._principal.principal_key}")
        try:
            await self._read_loop()
        finally:
            for task in list(self._tasks):
                task.cancel()
            heartbeat.cancel()
            try:
                await self.view.close()
            except Exception:
                logger.exception("View teardown failed for %s", self._principal.principal_key)
            self.store.clear()
            writer.cancel()

    async def handle(self, msg: WsInbound) -> None:
        if msg.type == "ping":
            self.emit("pong", {})

        elif msg.type == "conversation.open":
            target = self._parse_target(msg.data)
            if target is not None:
                self._spawn(self.view.open(target))

        elif msg.type == "conversation.close":
            await self._guarded(self.view.close())

        elif msg.type == "history.retry":
            self._spawn(self.view.retry())

        elif msg.type == "message.send":
            try:
                data = SendData.model_validate(msg.data)
            except PydanticValidationError:
                self.emit("error", {"code": "invalid_data", "detail": "content is required"})
                return
            self._spawn(self.view.send(data.content, self.composer))

        else:
            self.emit("error", {"code": "unknown_type", "type": msg.type})

    # -- internals ----------------------------------------------------------

    async def _read_loop(self) -> None:
        while True:
            raw = await self._ws.receive_text()
            try:
                msg = WsInbound.model_validate_json(raw)
            except PydanticValidationError:
                self.emit("error", {"code": "invalid_payload"})
                continue
            await self.handle(msg)

    async def _write_loop(self) -> None:
        while True:
            item = await self._outbox.get()
            if isinstance(item, _SnapshotRequest):
                if item.key not in self._dirty:
                    continue
                self._dirty.discard(item.key)
                if item.key != self.view.active_key:
                    continue
                item = self._snapshot(item.key)
            try:
                await self._ws.send_text(item.model_dump_json())
            except Exception:
                logger.debug("WS send failed for %s", self._principal.principal_key, exc_info=True)
                return

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._limits.heartbeat_seconds)
            self.emit("pong", {})

    def _parse_target(self, data: dict[str, Any]) -> ConversationTarget | None:
        try:
            parsed = OpenConversationData.model_validate(data)
            if parsed.chatroom:
                return ChatroomTarget()
            if not parsed.peer_id:
                raise ValidationError("peer_id or chatroom is required")
            return direct_target(self._principal, parsed.peer_id)
        except PydanticValidationError:
            self.emit("error", {"code": "invalid_data", "detail": "bad conversation.open payload"})
        except AppError as exc:
            self._emit_error(exc)
        return None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(self._guarded(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            await coro
        except AppError as exc:
            self._emit_error(exc)
        except Exception:
            logger.exception("WS command failed for %s", self._principal.principal_key)
            self.emit("error", {"code": "internal_error"})

    def _emit_error(self, exc: AppError) -> None:
        code = next(
            (c for cls, c in _ERROR_CODES.items() if isinstance(exc, cls)),
            "error",
        )
        self.emit("error", {"code": code, "detail": exc.detail})

    def _snapshot(self, key: ConversationKey) -> WsOutbound:
        messages = [
            MessageOut.from_message(m, self.view.profile_for(m.sender_id)).model_dump(mode="json")
            for m in self.store.get_messages(key)
        ]
        return WsOutbound(
            type="messages.snapshot",
            data={"conversation_key": key, "messages": messages},
        )

    def _request_snapshot(self, key: ConversationKey) -> None:
        self._dirty.add(key)
        self._outbox.put_nowait(_SnapshotRequest(key))

    def _on_store_change(self, key: ConversationKey) -> None:
        self._request_snapshot(key)

    def _on_composer_change(self, composer: ComposerState) -> None:
        self.emit("composer.state", {"content": composer.content, "locked": composer.locked})

    def _on_view_change(self, view: ConversationView) -> None:
        data: dict[str, Any] = {
            "conversation_key": view.active_key,
            "state": view.state.value,
            "degraded": view.degraded,
            "error": view.error,
        }
        if isinstance(view.target, DirectTarget):
            peer = view.profile_for(view.target.peer_id)
            data["peer"] = {"id": peer.id, "display_name": peer.display_name, "avatar_ref": peer.avatar_ref}
        self.emit("view.state", data)
        if view.active_key is not None:
            self._request_snapshot(view.active_key)

    def _on_push_message(self, outcome: DeliveryOutcome, message: ConfirmedMessage) -> None:
        if outcome == DeliveryOutcome.APPENDED:
            self.emit("conversations.changed", {"conversation_key": message.conversation_key})
