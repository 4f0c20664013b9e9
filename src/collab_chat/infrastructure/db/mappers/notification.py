from __future__ import annotations

from datetime import datetime, timezone

from collab_chat.domain.entities.notification import Notification
from collab_chat.infrastructure.db.models.notification import NotificationModel


def model_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=str(model.id),
        user_id=str(model.user_id),
        type=model.type,
        title=model.title,
        message=model.message,
        read=bool(model.read),
        related_type=model.related_type,
        related_id=model.related_id,
        created_at=model.created_at or datetime.now(timezone.utc),
    )
