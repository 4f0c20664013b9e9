from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CreateNotificationDTO:
    user_id: str
    type: str
    title: str
    message: str
    related_type: str | None = None
    related_id: str | None = None
