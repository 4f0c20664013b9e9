"""Merges durable messages from every delivery path into the store."""
from __future__ import annotations

import logging
from datetime import timedelta

from collab_chat.application.ports.clock import Clock, SystemClock
from collab_chat.domain.entities.message import ConfirmedMessage, PendingMessage
from collab_chat.domain.value_objects.enums import DeliveryOutcome, MessageStatus
from collab_chat.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

DEFAULT_MATCH_WINDOW = timedelta(seconds=15)


class DeliveryDeduplicator:
    """Sole write path for messages coming from the network or push channel.

    A confirmed message is either a duplicate of a durable id already held,
    the confirmation of a pending placeholder, or a new message. Placeholders
    are matched on sender and content within ``match_window`` of their local
    creation time, since inserts carry no client correlation id.
    """

    def __init__(
        self,
        store: ConversationStore,
        clock: Clock | None = None,
        match_window: timedelta = DEFAULT_MATCH_WINDOW,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._match_window = match_window

    def deliver(
        self,
        message: ConfirmedMessage,
        *,
        expected_pending_id: str | None = None,
    ) -> DeliveryOutcome:
        key = message.conversation_key
        placeholder = None
        if expected_pending_id is not None:
            candidate = self._store.get(key, expected_pending_id)
            if isinstance(candidate, PendingMessage):
                placeholder = candidate

        if self._store.contains(key, message.id):
            if placeholder is not None:
                # an earlier delivery appended the row after the match window
                self._store.promote(key, placeholder.id, message)
            logger.debug("Duplicate delivery of %s in %s", message.id, key)
            return DeliveryOutcome.DUPLICATE

        if placeholder is None:
            placeholder = self._match_pending(message)

        if placeholder is not None:
            if message.sender is None and placeholder.sender is not None:
                message = message.with_sender(placeholder.sender)
            self._store.promote(key, placeholder.id, message)
            logger.debug("Promoted %s to %s in %s", placeholder.id, message.id, key)
            return DeliveryOutcome.PROMOTED

        self._store.append_or_replace(key, message)
        return DeliveryOutcome.APPENDED

    def _match_pending(self, message: ConfirmedMessage) -> PendingMessage | None:
        now = self._clock.now()
        for pending in self._store.pending(message.conversation_key):
            if (
                pending.status == MessageStatus.PENDING
                and pending.sender_id == message.sender_id
                and pending.content == message.content
                and now - pending.created_at <= self._match_window
            ):
                return pending
        return None
