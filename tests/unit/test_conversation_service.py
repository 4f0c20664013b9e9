from __future__ import annotations

from datetime import timedelta

import pytest

from collab_chat.domain.entities.profile import DEFAULT_DISPLAY_NAME, Profile, fallback_avatar
from collab_chat.domain.value_objects.keys import conversation_key_for
from collab_chat.services import conversation_service
from tests.conftest import ALICE, BOB, CAROL, T0, FakeProfiles, make_confirmed


@pytest.mark.asyncio
async def test_list_is_newest_first_with_peer_profiles(message_store):
    message_store.rows += [
        make_confirmed(content="old bob", created_at=T0),
        make_confirmed(content="bob reply", sender_id=BOB, receiver_id=ALICE,
                       created_at=T0 + timedelta(minutes=1)),
        make_confirmed(content="to carol", receiver_id=CAROL,
                       created_at=T0 + timedelta(minutes=5)),
    ]
    profiles = FakeProfiles({BOB: Profile.from_row(BOB, "Bob", None)})

    summaries = await conversation_service.list_user_conversations(ALICE, message_store, profiles)

    assert [s.conversation_key for s in summaries] == [
        conversation_key_for(ALICE, CAROL),
        conversation_key_for(ALICE, BOB),
    ]
    carol, bob = summaries
    assert carol.is_outgoing is True
    assert carol.peer.display_name == DEFAULT_DISPLAY_NAME
    assert carol.peer.avatar_ref == fallback_avatar(CAROL)
    assert bob.last_message == "bob reply"
    assert bob.is_outgoing is False
    assert bob.peer.display_name == "Bob"


@pytest.mark.asyncio
async def test_list_empty_without_messages(message_store):
    assert await conversation_service.list_user_conversations(
        ALICE, message_store, FakeProfiles(),
    ) == []


def test_fallback_avatar_is_stable():
    assert fallback_avatar(BOB) == fallback_avatar(BOB)
    assert Profile.unknown(BOB).avatar_ref == fallback_avatar(BOB)
