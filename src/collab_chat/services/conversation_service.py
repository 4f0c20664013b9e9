from __future__ import annotations

from datetime import datetime, timezone

from collab_chat.application.ports.message_store import DurableMessageStore
from collab_chat.application.ports.profiles import ProfileLookup
from collab_chat.domain.entities.conversation import ConversationSummary
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.value_objects.keys import conversation_key_for

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _peer_of(message: ConfirmedMessage, user_id: str) -> str:
    if message.sender_id == user_id:
        return message.receiver_id or message.sender_id
    return message.sender_id


async def list_user_conversations(
    user_id: str,
    messages: DurableMessageStore,
    profiles: ProfileLookup,
) -> list[ConversationSummary]:
    """One entry per peer the user has exchanged direct messages with.

    Newest conversation first; conversations without a timestamp sort last.
    """
    latest: dict[str, ConfirmedMessage] = {}
    for message in await messages.latest_per_peer(user_id):
        peer = _peer_of(message, user_id)
        current = latest.get(peer)
        if current is None or message.created_at > current.created_at:
            latest[peer] = message

    if not latest:
        return []

    found = await profiles.get_profiles(latest.keys())
    summaries = [
        ConversationSummary(
            conversation_key=conversation_key_for(user_id, peer),
            peer=found.get(peer) or Profile.unknown(peer),
            last_message=message.content,
            last_message_at=message.created_at,
            is_outgoing=message.sender_id == user_id,
        )
        for peer, message in latest.items()
    ]
    summaries.sort(key=lambda s: s.last_message_at or _OLDEST, reverse=True)
    return summaries
