from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    read: bool
    related_type: str | None
    related_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreateNotificationRequest(BaseModel):
    user_id: UUID
    type: str
    title: str
    message: str
    related_type: str | None = None
    related_id: str | None = None


class MarkAllReadResponse(BaseModel):
    updated: int


class UnreadCountResponse(BaseModel):
    unread: int
