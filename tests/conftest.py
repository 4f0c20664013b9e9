"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest

from collab_chat.application.dto.composer import ComposerState
from collab_chat.application.dto.notification import CreateNotificationDTO
from collab_chat.application.dto.principal import Principal
from collab_chat.application.exceptions import ChannelError
from collab_chat.application.ports.bus import EventPredicate, OnDrop, OnInserted
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.notification import Notification
from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.entities.target import ConversationTarget, DirectTarget
from collab_chat.domain.events.message_inserted import MessageInserted
from collab_chat.domain.value_objects.enums import NoticeVariant
from collab_chat.domain.value_objects.keys import ConversationKey, conversation_key_for
from collab_chat.services.conversation_store import ConversationStore
from collab_chat.services.deduplicator import DeliveryDeduplicator

ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"
CAROL = "33333333-3333-3333-3333-333333333333"

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=ALICE)


@pytest.fixture
def bob_target() -> DirectTarget:
    return DirectTarget(user_id=ALICE, peer_id=BOB)


def make_confirmed(
    *,
    content: str = "hello",
    sender_id: str = ALICE,
    receiver_id: str | None = BOB,
    created_at: datetime = T0,
    message_id: str | None = None,
    key: ConversationKey | None = None,
) -> ConfirmedMessage:
    if key is None:
        key = (
            conversation_key_for(sender_id, receiver_id)
            if receiver_id is not None
            else ConversationKey("chatroom")
        )
    return ConfirmedMessage(
        id=message_id or str(uuid.uuid4()),
        conversation_key=key,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        created_at=created_at,
    )


@dataclass
class FakeClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass
class RecordingNotifier:
    notices: list[tuple[str, str, NoticeVariant]] = field(default_factory=list)

    def notify(
        self,
        title: str,
        description: str,
        variant: NoticeVariant = NoticeVariant.DEFAULT,
    ) -> None:
        self.notices.append((title, description, variant))


@dataclass
class FakeMessageStore:
    """In-memory DurableMessageStore.

    ``insert_gate`` holds inserts until set; ``before_return`` runs after the
    row exists but before insert returns (used to race the push channel).
    ``return_gate`` holds the insert response after the row exists.
    ``query_gates`` holds history queries per conversation key.
    """

    clock: FakeClock = field(default_factory=FakeClock)
    rows: list[ConfirmedMessage] = field(default_factory=list)
    inserts: list[tuple[ConversationTarget, str, str]] = field(default_factory=list)
    queries: list[ConversationKey] = field(default_factory=list)
    insert_error: Exception | None = None
    query_error: Exception | None = None
    insert_gate: asyncio.Event | None = None
    before_return: object = None
    return_gate: asyncio.Event | None = None
    query_gates: dict[str, asyncio.Event] = field(default_factory=dict)

    async def insert(
        self, target: ConversationTarget, sender_id: str, content: str,
    ) -> ConfirmedMessage:
        self.inserts.append((target, sender_id, content))
        if self.insert_gate is not None:
            await self.insert_gate.wait()
        if self.insert_error is not None:
            raise self.insert_error
        message = make_confirmed(
            content=content,
            sender_id=sender_id,
            receiver_id=target.receiver_id,
            created_at=self.clock.now(),
            key=target.key,
        )
        self.rows.append(message)
        if callable(self.before_return):
            self.before_return(message)
        if self.return_gate is not None:
            await self.return_gate.wait()
        return message

    async def query(self, target: ConversationTarget) -> list[ConfirmedMessage]:
        self.queries.append(target.key)
        gate = self.query_gates.get(target.key)
        if gate is not None:
            await gate.wait()
        if self.query_error is not None:
            raise self.query_error
        return sorted(
            (m for m in self.rows if m.conversation_key == target.key),
            key=lambda m: m.created_at,
        )

    async def latest_per_peer(self, user_id: str) -> list[ConfirmedMessage]:
        latest: dict[str, ConfirmedMessage] = {}
        for m in self.rows:
            if m.receiver_id is None or user_id not in (m.sender_id, m.receiver_id):
                continue
            peer = m.receiver_id if m.sender_id == user_id else m.sender_id
            if peer not in latest or m.created_at > latest[peer].created_at:
                latest[peer] = m
        return list(latest.values())


@dataclass(eq=False)
class FakeHandle:
    predicate: EventPredicate
    on_event: OnInserted
    on_drop: OnDrop | None
    closed: bool = False


@dataclass
class FakePushChannel:
    handles: list[FakeHandle] = field(default_factory=list)
    opened: int = 0
    closed_count: int = 0
    fail: bool = False
    open_gate: asyncio.Event | None = None

    async def open_channel(
        self,
        predicate: EventPredicate,
        on_event: OnInserted,
        on_drop: OnDrop | None = None,
    ) -> FakeHandle:
        self.opened += 1
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.fail:
            raise ChannelError("push channel unavailable")
        handle = FakeHandle(predicate, on_event, on_drop)
        self.handles.append(handle)
        return handle

    async def close_channel(self, handle: FakeHandle) -> None:
        if not handle.closed:
            handle.closed = True
            self.closed_count += 1

    @property
    def live(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.closed]

    def push(self, message: ConfirmedMessage) -> int:
        delivered = 0
        for handle in self.live:
            if handle.predicate(message):
                handle.on_event(MessageInserted(message))
                delivered += 1
        return delivered

    def drop(self) -> None:
        for handle in self.live:
            handle.closed = True
            if handle.on_drop is not None:
                handle.on_drop()


@dataclass
class FakeProfiles:
    profiles: dict[str, Profile] = field(default_factory=dict)
    lookups: list[str] = field(default_factory=list)

    async def get_profile(self, user_id: str) -> Profile | None:
        self.lookups.append(user_id)
        return self.profiles.get(user_id)

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        return {uid: self.profiles[uid] for uid in user_ids if uid in self.profiles}


@dataclass
class FakeNotifications:
    items: dict[str, Notification] = field(default_factory=dict)

    def add(self, *, user_id: str, read: bool = False, title: str = "Hi") -> Notification:
        n = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type="message",
            title=title,
            message="body",
            read=read,
            related_type=None,
            related_id=None,
            created_at=T0,
        )
        self.items[n.id] = n
        return n

    async def list_for_user(self, user_id: str) -> list[Notification]:
        return sorted(
            (n for n in self.items.values() if n.user_id == user_id),
            key=lambda n: n.created_at,
            reverse=True,
        )

    async def get(self, notification_id: str) -> Notification | None:
        return self.items.get(notification_id)

    async def mark_read(self, notification_id: str) -> None:
        self.items[notification_id] = replace(self.items[notification_id], read=True)

    async def count_unread(self, user_id: str) -> int:
        return sum(1 for n in self.items.values() if n.user_id == user_id and not n.read)

    async def mark_all_read(self, user_id: str) -> int:
        unread = [n for n in self.items.values() if n.user_id == user_id and not n.read]
        for n in unread:
            self.items[n.id] = replace(n, read=True)
        return len(unread)

    async def create(self, dto: CreateNotificationDTO) -> Notification:
        n = Notification(
            id=str(uuid.uuid4()),
            user_id=dto.user_id,
            type=dto.type,
            title=dto.title,
            message=dto.message,
            read=False,
            related_type=dto.related_type,
            related_id=dto.related_id,
            created_at=T0,
        )
        self.items[n.id] = n
        return n


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> ConversationStore:
    s = ConversationStore()
    s.init()
    return s


@pytest.fixture
def deduplicator(store, clock) -> DeliveryDeduplicator:
    return DeliveryDeduplicator(store, clock)


@pytest.fixture
def message_store(clock) -> FakeMessageStore:
    return FakeMessageStore(clock=clock)


@pytest.fixture
def push_channel() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def composer() -> ComposerState:
    return ComposerState()

