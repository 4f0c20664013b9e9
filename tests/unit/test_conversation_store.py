from __future__ import annotations

from datetime import timedelta

import pytest

from collab_chat.application.exceptions import ValidationError
from collab_chat.domain.entities.message import PendingMessage
from collab_chat.domain.value_objects.keys import conversation_key_for, new_local_id
from collab_chat.services.conversation_store import ConversationStore
from tests.conftest import ALICE, BOB, T0, make_confirmed

KEY = conversation_key_for(ALICE, BOB)


def _pending(content: str = "hello", offset: float = 0) -> PendingMessage:
    return PendingMessage(
        id=new_local_id(),
        conversation_key=KEY,
        sender_id=ALICE,
        receiver_id=BOB,
        content=content,
        created_at=T0 + timedelta(seconds=offset),
    )


def test_messages_sorted_by_created_at(store):
    t1 = make_confirmed(content="1", created_at=T0)
    t2 = make_confirmed(content="2", created_at=T0 + timedelta(seconds=2))
    t3 = make_confirmed(content="3", created_at=T0 + timedelta(seconds=3))

    for m in (t1, t3, t2):
        store.append_or_replace(KEY, m)

    assert [m.content for m in store.get_messages(KEY)] == ["1", "2", "3"]


def test_equal_timestamps_keep_arrival_order(store):
    first = make_confirmed(content="first")
    second = make_confirmed(content="second")
    store.append_or_replace(KEY, first)
    store.append_or_replace(KEY, second)

    assert [m.content for m in store.get_messages(KEY)] == ["first", "second"]


def test_append_same_id_is_noop(store):
    m = make_confirmed()
    assert store.append_or_replace(KEY, m) is True
    assert store.append_or_replace(KEY, m) is False
    assert len(store.get_messages(KEY)) == 1


def test_unknown_conversation_reads_empty(store):
    assert store.get_messages(KEY) == []
    assert store.loaded(KEY) is False
    store.ensure(KEY)
    assert store.loaded(KEY) is True


def test_promote_swaps_placeholder(store):
    pending = _pending()
    store.append_or_replace(KEY, pending)
    confirmed = make_confirmed(created_at=T0)

    store.promote(KEY, pending.id, confirmed)

    assert store.get_messages(KEY) == [confirmed]
    assert store.contains(KEY, pending.id) is False


def test_promote_without_placeholder_inserts(store):
    confirmed = make_confirmed()
    store.promote(KEY, new_local_id(), confirmed)
    assert store.get_messages(KEY) == [confirmed]


def test_promote_when_confirmed_already_present_drops_placeholder(store):
    pending = _pending()
    confirmed = make_confirmed()
    store.append_or_replace(KEY, pending)
    store.append_or_replace(KEY, confirmed)

    store.promote(KEY, pending.id, confirmed)

    assert store.get_messages(KEY) == [confirmed]


def test_promote_rejects_durable_id(store):
    with pytest.raises(ValidationError):
        store.promote(KEY, "not-local", make_confirmed())


def test_remove_refuses_durable_message(store):
    confirmed = make_confirmed()
    store.append_or_replace(KEY, confirmed)

    with pytest.raises(ValidationError):
        store.remove(KEY, confirmed.id)
    assert store.contains(KEY, confirmed.id)


def test_remove_placeholder(store):
    pending = _pending()
    store.append_or_replace(KEY, pending)
    assert store.remove(KEY, pending.id) is True
    assert store.remove(KEY, pending.id) is False
    assert store.get_messages(KEY) == []


def test_pending_lists_placeholders_only(store):
    pending = _pending()
    store.append_or_replace(KEY, pending)
    store.append_or_replace(KEY, make_confirmed())
    assert store.pending(KEY) == [pending]


def test_inactive_store_drops_writes():
    store = ConversationStore()
    assert store.append_or_replace(KEY, make_confirmed()) is False
    assert store.get_messages(KEY) == []

    store.init()
    store.append_or_replace(KEY, make_confirmed())
    store.clear()

    assert store.get_messages(KEY) == []
    assert store.append_or_replace(KEY, make_confirmed()) is False


def test_on_change_fires_per_mutation():
    changes = []
    store = ConversationStore(on_change=changes.append)
    store.init()
    m = make_confirmed()
    store.append_or_replace(KEY, m)
    store.append_or_replace(KEY, m)
    assert changes == [KEY]
