from __future__ import annotations

from enum import StrEnum


class MessageStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class DeliveryOutcome(StrEnum):
    DUPLICATE = "duplicate"
    PROMOTED = "promoted"
    APPENDED = "appended"


class SendOutcome(StrEnum):
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ViewState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class NoticeVariant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"
