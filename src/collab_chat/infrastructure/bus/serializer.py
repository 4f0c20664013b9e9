from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel

from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.value_objects.keys import CHATROOM_KEY, conversation_key_for

DIRECT_TABLE = "messages"
CHATROOM_TABLE = "chatroom_messages"


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    data = json.loads(raw)
    return data["event"], data["data"]


class InsertedRow(BaseModel):
    """Row shape carried by a ``message.inserted`` event."""

    table: Literal["messages", "chatroom_messages"]
    id: str
    sender_id: str
    receiver_id: str | None = None
    content: str
    created_at: datetime

    model_config = {"extra": "ignore"}


def message_to_payload(message: ConfirmedMessage) -> dict[str, Any]:
    return {
        "table": CHATROOM_TABLE if message.receiver_id is None else DIRECT_TABLE,
        "id": message.id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "content": message.content,
        "created_at": message.created_at.isoformat(),
    }


def payload_to_message(data: dict[str, Any]) -> ConfirmedMessage:
    """Normalise a push payload. Raises pydantic.ValidationError on bad shapes."""
    row = InsertedRow.model_validate(data)
    if row.table == CHATROOM_TABLE:
        key = CHATROOM_KEY
        receiver_id = None
    else:
        if row.receiver_id is None:
            raise ValueError("direct message payload without receiver_id")
        key = conversation_key_for(row.sender_id, row.receiver_id)
        receiver_id = row.receiver_id
    return ConfirmedMessage(
        id=row.id,
        conversation_key=key,
        sender_id=row.sender_id,
        receiver_id=receiver_id,
        content=row.content,
        created_at=row.created_at,
    )
