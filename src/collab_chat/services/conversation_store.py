"""In-memory conversation store owned by one client session."""
from __future__ import annotations

import itertools
import logging
from bisect import insort
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from collab_chat.application.exceptions import ValidationError
from collab_chat.domain.entities.message import ConfirmedMessage, Message, PendingMessage
from collab_chat.domain.value_objects.keys import ConversationKey, is_local_id

logger = logging.getLogger(__name__)

OnChange = Callable[[ConversationKey], None]


@dataclass(slots=True)
class _Entry:
    message: Message
    seq: int


def _sort_key(entry: _Entry) -> tuple[datetime, int]:
    return entry.message.created_at, entry.seq


class ConversationStore:
    """Ordered message sequences keyed by conversation.

    Messages are kept sorted by ``created_at``; ties keep arrival order.
    A durable id is held at most once per conversation. Mutations are plain
    synchronous calls, so nothing interleaves inside one of them.

    The store is inert until ``init()`` and after ``clear()``: reads return
    nothing and writes are dropped, so late network results from a finished
    session cannot resurrect state.
    """

    def __init__(self, on_change: OnChange | None = None) -> None:
        self._conversations: dict[ConversationKey, list[_Entry]] = {}
        self._index: dict[ConversationKey, dict[str, _Entry]] = {}
        self._seq = itertools.count()
        self._active = False
        self._on_change = on_change

    @property
    def active(self) -> bool:
        return self._active

    def init(self) -> None:
        self._conversations.clear()
        self._index.clear()
        self._active = True

    def clear(self) -> None:
        self._conversations.clear()
        self._index.clear()
        self._active = False

    # -- reads --------------------------------------------------------------

    def get_messages(self, key: ConversationKey) -> list[Message]:
        return [entry.message for entry in self._conversations.get(key, ())]

    def get(self, key: ConversationKey, message_id: str) -> Message | None:
        entry = self._index.get(key, {}).get(message_id)
        return entry.message if entry else None

    def contains(self, key: ConversationKey, message_id: str) -> bool:
        return message_id in self._index.get(key, {})

    def pending(self, key: ConversationKey) -> list[PendingMessage]:
        return [
            entry.message
            for entry in self._conversations.get(key, ())
            if isinstance(entry.message, PendingMessage)
        ]

    def loaded(self, key: ConversationKey) -> bool:
        return key in self._conversations

    def keys(self) -> list[ConversationKey]:
        return list(self._conversations)

    # -- writes -------------------------------------------------------------

    def ensure(self, key: ConversationKey) -> None:
        """Mark a conversation as loaded even when it has no messages."""
        if not self._writable(key):
            return
        self._bucket(key)

    def append_or_replace(self, key: ConversationKey, message: Message) -> bool:
        """Insert ``message`` at its sorted position.

        Returns False without touching the store when a message with the same
        id is already present.
        """
        if not self._writable(key):
            return False
        entries, index = self._bucket(key)
        if message.id in index:
            return False
        entry = _Entry(message, next(self._seq))
        insort(entries, entry, key=_sort_key)
        index[message.id] = entry
        self._changed(key)
        return True

    def promote(
        self,
        key: ConversationKey,
        pending_id: str,
        confirmed: ConfirmedMessage,
    ) -> None:
        """Swap a pending placeholder for its durable counterpart.

        If the placeholder is already gone the confirmation is inserted fresh.
        If the durable id is already present only the placeholder is dropped.
        """
        if not is_local_id(pending_id):
            raise ValidationError(f"{pending_id} is not a local placeholder id")
        if not self._writable(key):
            return
        entries, index = self._bucket(key)

        placeholder = index.pop(pending_id, None)
        if placeholder is not None:
            entries.remove(placeholder)

        if confirmed.id not in index:
            seq = placeholder.seq if placeholder is not None else next(self._seq)
            entry = _Entry(confirmed, seq)
            insort(entries, entry, key=_sort_key)
            index[confirmed.id] = entry
        self._changed(key)

    def remove(self, key: ConversationKey, local_id: str) -> bool:
        """Drop a pending or failed placeholder. Durable messages stay."""
        if not is_local_id(local_id):
            raise ValidationError(f"Refusing to remove durable message {local_id}")
        if not self._writable(key):
            return False
        entry = self._index.get(key, {}).pop(local_id, None)
        if entry is None:
            return False
        self._conversations[key].remove(entry)
        self._changed(key)
        return True

    # -- internals ----------------------------------------------------------

    def _writable(self, key: ConversationKey) -> bool:
        if not self._active:
            logger.debug("Dropping write to %s on inactive store", key)
        return self._active

    def _bucket(
        self, key: ConversationKey,
    ) -> tuple[list[_Entry], dict[str, _Entry]]:
        return (
            self._conversations.setdefault(key, []),
            self._index.setdefault(key, {}),
        )

    def _changed(self, key: ConversationKey) -> None:
        if self._on_change is not None:
            self._on_change(key)
