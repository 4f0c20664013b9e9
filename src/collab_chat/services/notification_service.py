from __future__ import annotations

from collab_chat.application.dto.notification import CreateNotificationDTO
from collab_chat.application.dto.principal import Principal
from collab_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from collab_chat.application.ports.notifications import NotificationRepository
from collab_chat.domain.entities.notification import Notification


async def list_notifications(
    principal: Principal,
    repo: NotificationRepository,
) -> list[Notification]:
    return await repo.list_for_user(principal.user_id)


async def unread_count(principal: Principal, repo: NotificationRepository) -> int:
    """Number of unread notifications, for the bell badge."""
    return await repo.count_unread(principal.user_id)


async def mark_read(
    notification_id: str,
    principal: Principal,
    repo: NotificationRepository,
) -> None:
    notification = await repo.get(notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.user_id != principal.user_id:
        raise ForbiddenError("Not your notification")
    if not notification.read:
        await repo.mark_read(notification_id)


async def mark_all_read(principal: Principal, repo: NotificationRepository) -> int:
    return await repo.mark_all_read(principal.user_id)


async def create_notification(
    dto: CreateNotificationDTO,
    repo: NotificationRepository,
) -> Notification:
    if not dto.title.strip():
        raise ValidationError("Notification title is required")
    return await repo.create(dto)
