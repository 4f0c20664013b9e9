from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    read: bool
    related_type: str | None
    related_id: str | None
    created_at: datetime
