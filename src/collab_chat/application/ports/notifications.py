from __future__ import annotations

from typing import Protocol

from collab_chat.application.dto.notification import CreateNotificationDTO
from collab_chat.domain.entities.notification import Notification


class NotificationRepository(Protocol):
    async def list_for_user(self, user_id: str) -> list[Notification]: ...

    async def get(self, notification_id: str) -> Notification | None: ...

    async def count_unread(self, user_id: str) -> int: ...

    async def mark_read(self, notification_id: str) -> None: ...

    async def mark_all_read(self, user_id: str) -> int:
        """Return the number of notifications flipped to read."""
        ...

    async def create(self, dto: CreateNotificationDTO) -> Notification: ...
