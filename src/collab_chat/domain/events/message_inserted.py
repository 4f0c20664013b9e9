from __future__ import annotations

from dataclasses import dataclass

from collab_chat.domain.entities.message import ConfirmedMessage

MESSAGE_INSERTED = "message.inserted"


@dataclass(frozen=True, slots=True)
class MessageInserted:
    """A durable message row was inserted (direct message or chatroom)."""

    message: ConfirmedMessage
