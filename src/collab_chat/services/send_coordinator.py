"""Optimistic send: show the message at once, reconcile or roll back later."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from collab_chat.application.exceptions import ConflictError, DeliveryError
from collab_chat.application.ports.clock import Clock, SystemClock
from collab_chat.application.ports.message_store import DurableMessageStore
from collab_chat.application.ports.ui import Composer, Notifier
from collab_chat.domain.entities.message import Message, PendingMessage
from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.entities.target import ConversationTarget
from collab_chat.domain.value_objects.enums import DeliveryOutcome, NoticeVariant, SendOutcome
from collab_chat.domain.value_objects.keys import new_local_id
from collab_chat.services.conversation_store import ConversationStore
from collab_chat.services.deduplicator import DeliveryDeduplicator
from collab_chat.services.message_service import content_limit, validate_content

logger = logging.getLogger(__name__)

SEND_FAILED_TITLE = "Error sending message"
UNEXPECTED_FAILURE = "An unexpected error occurred"


@dataclass(frozen=True, slots=True)
class SendResult:
    outcome: SendOutcome
    message: Message
    delivery: DeliveryOutcome | None = None


class OptimisticSendCoordinator:
    def __init__(
        self,
        store: ConversationStore,
        deduplicator: DeliveryDeduplicator,
        message_store: DurableMessageStore,
        notifier: Notifier,
        *,
        clock: Clock | None = None,
        max_length: int = 1000,
        max_chatroom_length: int = 1000,
        sender_profile: Profile | None = None,
    ) -> None:
        self._store = store
        self._deduplicator = deduplicator
        self._message_store = message_store
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._max_length = max_length
        self._max_chatroom_length = max_chatroom_length
        self._sender_profile = sender_profile

    async def send(
        self,
        target: ConversationTarget,
        sender_id: str,
        content: str,
        composer: Composer,
    ) -> SendResult:
        """Send ``content`` to ``target`` with exactly one durable insert.

        Validation and single-flight errors are raised before anything changes.
        Insert failures are not raised: the placeholder is removed, the
        composer gets the original text back, and a notice is shown.
        """
        text = validate_content(
            content,
            content_limit(target, self._max_length, self._max_chatroom_length),
        )
        if composer.locked:
            raise ConflictError("A message is already being sent")

        pending = PendingMessage(
            id=new_local_id(),
            conversation_key=target.key,
            sender_id=sender_id,
            receiver_id=target.receiver_id,
            content=text,
            created_at=self._clock.now(),
            sender=self._sender_profile,
        )
        self._store.append_or_replace(target.key, pending)
        composer.lock_and_clear()

        try:
            confirmed = await self._message_store.insert(target, sender_id, text)
        except asyncio.CancelledError:
            self._roll_back(pending, content, composer)
            raise
        except DeliveryError as exc:
            logger.warning("Send to %s rejected: %s", target.key, exc.detail)
            self._roll_back(pending, content, composer)
            self._notifier.notify(
                SEND_FAILED_TITLE, exc.detail or UNEXPECTED_FAILURE, NoticeVariant.DESTRUCTIVE,
            )
            return SendResult(SendOutcome.FAILED, pending.failed())
        except Exception:
            logger.exception("Unexpected error sending to %s", target.key)
            self._roll_back(pending, content, composer)
            self._notifier.notify(
                SEND_FAILED_TITLE, UNEXPECTED_FAILURE, NoticeVariant.DESTRUCTIVE,
            )
            return SendResult(SendOutcome.FAILED, pending.failed())

        delivery = self._deduplicator.deliver(confirmed, expected_pending_id=pending.id)
        composer.release()
        return SendResult(SendOutcome.CONFIRMED, confirmed, delivery)

    def _roll_back(self, pending: PendingMessage, content: str, composer: Composer) -> None:
        self._store.remove(pending.conversation_key, pending.id)
        composer.restore(content)
