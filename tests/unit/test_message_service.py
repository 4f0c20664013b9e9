from __future__ import annotations

import pytest

from collab_chat.application.exceptions import ValidationError
from collab_chat.domain.entities.target import ChatroomTarget
from collab_chat.domain.value_objects.keys import conversation_key_for
from collab_chat.services import message_service
from tests.conftest import ALICE, BOB


def test_validate_content_strips():
    assert message_service.validate_content("  hi  ", 10) == "hi"


@pytest.mark.parametrize("content", ["", " \n\t ", "x" * 11])
def test_validate_content_rejects(content):
    with pytest.raises(ValidationError):
        message_service.validate_content(content, 10)


def test_direct_target_rejects_self(alice):
    with pytest.raises(ValidationError):
        message_service.direct_target(alice, ALICE)


def test_direct_target(alice):
    target = message_service.direct_target(alice, BOB)
    assert target.peer_id == BOB
    assert target.receiver_id == BOB


@pytest.mark.parametrize("spelling", [BOB.upper(), "{" + BOB + "}", BOB.replace("-", "")])
def test_direct_target_canonicalises_peer_id(alice, spelling):
    target = message_service.direct_target(alice, spelling)
    assert target.peer_id == BOB
    assert target.key == conversation_key_for(ALICE, BOB)


def test_direct_target_canonical_self_is_rejected(alice):
    with pytest.raises(ValidationError):
        message_service.direct_target(alice, ALICE.upper())


@pytest.mark.parametrize("peer_id", ["bob", "", "1234"])
def test_direct_target_rejects_non_uuid(alice, peer_id):
    with pytest.raises(ValidationError):
        message_service.direct_target(alice, peer_id)


def test_content_limit_per_target(bob_target):
    assert message_service.content_limit(bob_target, 100, 50) == 100
    assert message_service.content_limit(ChatroomTarget(), 100, 50) == 50


@pytest.mark.asyncio
async def test_send_and_list(alice, bob_target, message_store):
    sent = await message_service.send_message(bob_target, alice, " hi ", 100, message_store)
    history = await message_service.list_messages(bob_target, message_store)
    assert history == [sent]
    assert sent.content == "hi"
