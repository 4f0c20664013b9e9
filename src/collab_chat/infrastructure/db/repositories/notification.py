from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collab_chat.application.dto.notification import CreateNotificationDTO
from collab_chat.domain.entities.notification import Notification
from collab_chat.infrastructure.db.mappers import notification as mapper
from collab_chat.infrastructure.db.models.notification import NotificationModel


class SqlNotificationRepository:
    """Implements application.ports.notifications.NotificationRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_for_user(self, user_id: str) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == UUID(user_id))
            .order_by(NotificationModel.created_at.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get(self, notification_id: str) -> Notification | None:
        async with self._session_factory() as session:
            model = await session.get(NotificationModel, UUID(notification_id))
            return mapper.model_to_entity(model) if model else None

    async def count_unread(self, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(NotificationModel)
            .where(
                NotificationModel.user_id == UUID(user_id),
                NotificationModel.read.is_not(True),
            )
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def mark_read(self, notification_id: str) -> None:
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.id == UUID(notification_id))
            .values(read=True)
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def mark_all_read(self, user_id: str) -> int:
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.user_id == UUID(user_id),
                NotificationModel.read.is_not(True),
            )
            .values(read=True)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount or 0

    async def create(self, dto: CreateNotificationDTO) -> Notification:
        stmt = (
            pg_insert(NotificationModel)
            .values(
                user_id=UUID(dto.user_id),
                type=dto.type,
                title=dto.title,
                message=dto.message,
                related_type=dto.related_type,
                related_id=dto.related_id,
                read=False,
            )
            .returning(NotificationModel)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one()
            await session.commit()
            return mapper.model_to_entity(row)
