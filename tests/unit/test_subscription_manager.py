from __future__ import annotations

import asyncio

import pytest

from collab_chat.application.exceptions import ChannelError
from collab_chat.domain.entities.target import ChatroomTarget
from collab_chat.domain.events.message_inserted import MessageInserted
from collab_chat.domain.value_objects.enums import DeliveryOutcome
from collab_chat.services.subscription_manager import SubscriptionManager
from tests.conftest import ALICE, BOB, CAROL, make_confirmed


@pytest.fixture
def manager(push_channel, deduplicator):
    return SubscriptionManager(push_channel, deduplicator)


@pytest.mark.asyncio
async def test_events_are_filtered_and_deduplicated(manager, push_channel, store, bob_target):
    seen = []
    await manager.subscribe(bob_target, lambda outcome, m: seen.append((outcome, m.id)))

    mine = make_confirmed(sender_id=BOB, receiver_id=ALICE)
    other = make_confirmed(sender_id=CAROL, receiver_id=ALICE)
    push_channel.push(mine)
    push_channel.push(mine)
    push_channel.push(other)

    assert seen == [
        (DeliveryOutcome.APPENDED, mine.id),
        (DeliveryOutcome.DUPLICATE, mine.id),
    ]
    assert [m.id for m in store.get_messages(bob_target.key)] == [mine.id]


@pytest.mark.asyncio
async def test_resubscribe_tears_down_previous(manager, push_channel, bob_target):
    first = await manager.subscribe(bob_target, lambda *_: None)
    second = await manager.subscribe(ChatroomTarget(), lambda *_: None)

    assert first.closed is True
    assert manager.active is second
    assert len(push_channel.live) == 1


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent(manager, push_channel, bob_target):
    handle = await manager.subscribe(bob_target, lambda *_: None)

    await manager.unsubscribe(handle)
    await manager.unsubscribe(handle)

    assert push_channel.closed_count == 1
    assert manager.active is None


@pytest.mark.asyncio
async def test_no_delivery_after_unsubscribe(manager, push_channel, store, bob_target):
    seen = []
    handle = await manager.subscribe(bob_target, lambda *a: seen.append(a))
    callback = push_channel.handles[0].on_event
    await manager.unsubscribe(handle)

    callback(MessageInserted(make_confirmed(sender_id=BOB, receiver_id=ALICE)))
    assert seen == []
    assert store.get_messages(bob_target.key) == []


@pytest.mark.asyncio
async def test_superseded_open_is_closed(manager, push_channel, bob_target):
    push_channel.open_gate = asyncio.Event()
    slow = asyncio.create_task(manager.subscribe(bob_target, lambda *_: None))
    await asyncio.sleep(0)

    push_channel.open_gate.set()
    push_channel.open_gate = None
    await manager.close()
    handle = await slow

    assert handle.closed is True
    assert push_channel.live == []


@pytest.mark.asyncio
async def test_failed_open_raises_channel_error(manager, push_channel, bob_target):
    push_channel.fail = True
    with pytest.raises(ChannelError):
        await manager.subscribe(bob_target, lambda *_: None)
    assert manager.active is None


@pytest.mark.asyncio
async def test_subscription_context_manager(manager, push_channel, bob_target):
    async with manager.subscription(bob_target, lambda *_: None) as handle:
        assert handle.closed is False
    assert handle.closed is True
    assert push_channel.live == []
