"""Durable message store over the ``messages`` and ``chatroom_messages`` tables."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import and_, case, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collab_chat.application.exceptions import DeliveryError, HistoryFetchError
from collab_chat.application.ports.bus import EventPublisher
from collab_chat.domain.entities.message import ConfirmedMessage
from collab_chat.domain.entities.target import ChatroomTarget, ConversationTarget, DirectTarget
from collab_chat.domain.events.message_inserted import MESSAGE_INSERTED
from collab_chat.infrastructure.bus.serializer import message_to_payload
from collab_chat.infrastructure.db.mappers import message as mapper
from collab_chat.infrastructure.db.models.chatroom_message import ChatroomMessageModel
from collab_chat.infrastructure.db.models.message import DirectMessageModel
from collab_chat.infrastructure.db.models.profile import ProfileModel

logger = logging.getLogger(__name__)


class SqlMessageStore:
    """Implements application.ports.message_store.DurableMessageStore.

    Each committed insert is announced on the push channel, the way the
    database's change feed would announce it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: EventPublisher | None = None,
        channel: str = "messages.inserted",
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher
        self._channel = channel

    async def insert(
        self, target: ConversationTarget, sender_id: str, content: str,
    ) -> ConfirmedMessage:
        try:
            async with self._session_factory() as session:
                if isinstance(target, ChatroomTarget):
                    stmt = (
                        pg_insert(ChatroomMessageModel)
                        .values(user_id=UUID(sender_id), content=content)
                        .returning(ChatroomMessageModel)
                    )
                    row = (await session.execute(stmt)).scalar_one()
                    message = mapper.chatroom_to_entity(row)
                else:
                    stmt = (
                        pg_insert(DirectMessageModel)
                        .values(
                            sender_id=UUID(sender_id),
                            receiver_id=UUID(target.peer_id),
                            content=content,
                        )
                        .returning(DirectMessageModel)
                    )
                    row = (await session.execute(stmt)).scalar_one()
                    message = mapper.direct_to_entity(row)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Insert into %s failed", target.key)
            raise DeliveryError("Could not save message") from exc

        await self._announce(message)
        return message

    async def query(self, target: ConversationTarget) -> list[ConfirmedMessage]:
        try:
            async with self._session_factory() as session:
                if isinstance(target, DirectTarget):
                    return await self._query_direct(session, target)
                return await self._query_chatroom(session)
        except SQLAlchemyError as exc:
            logger.exception("History query for %s failed", target.key)
            raise HistoryFetchError("Could not load messages") from exc

    async def latest_per_peer(self, user_id: str) -> list[ConfirmedMessage]:
        me = UUID(user_id)
        peer = case(
            (DirectMessageModel.sender_id == me, DirectMessageModel.receiver_id),
            else_=DirectMessageModel.sender_id,
        )
        stmt = (
            select(DirectMessageModel)
            .where(or_(DirectMessageModel.sender_id == me, DirectMessageModel.receiver_id == me))
            .distinct(peer)
            .order_by(peer, DirectMessageModel.created_at.desc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [mapper.direct_to_entity(m) for m in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.exception("Conversation list query for %s failed", user_id)
            raise HistoryFetchError("Could not load conversations") from exc

    async def _query_direct(
        self, session: AsyncSession, target: DirectTarget,
    ) -> list[ConfirmedMessage]:
        me, peer = UUID(target.user_id), UUID(target.peer_id)
        stmt = (
            select(DirectMessageModel, ProfileModel)
            .outerjoin(ProfileModel, ProfileModel.id == DirectMessageModel.sender_id)
            .where(
                or_(
                    and_(DirectMessageModel.sender_id == me, DirectMessageModel.receiver_id == peer),
                    and_(DirectMessageModel.sender_id == peer, DirectMessageModel.receiver_id == me),
                )
            )
            .order_by(DirectMessageModel.created_at.asc(), DirectMessageModel.id.asc())
        )
        result = await session.execute(stmt)
        return [mapper.direct_to_entity(m, p) for m, p in result.all()]

    async def _query_chatroom(self, session: AsyncSession) -> list[ConfirmedMessage]:
        stmt = (
            select(ChatroomMessageModel, ProfileModel)
            .outerjoin(ProfileModel, ProfileModel.id == ChatroomMessageModel.user_id)
            .order_by(ChatroomMessageModel.created_at.asc(), ChatroomMessageModel.id.asc())
        )
        result = await session.execute(stmt)
        return [mapper.chatroom_to_entity(m, p) for m, p in result.all()]

    async def _announce(self, message: ConfirmedMessage) -> None:
        if self._publisher is None:
            return
        try:
            await self._publisher.publish(
                self._channel,
                {"event_type": MESSAGE_INSERTED, **message_to_payload(message)},
            )
        except Exception:
            # the row is durable; subscribers will see it on their next fetch
            logger.exception("Failed to announce message %s", message.id)
