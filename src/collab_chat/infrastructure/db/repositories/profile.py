from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collab_chat.domain.entities.profile import Profile
from collab_chat.infrastructure.db.mappers.profile import model_to_profile
from collab_chat.infrastructure.db.models.profile import ProfileModel


class SqlProfileRepository:
    """Implements application.ports.profiles.ProfileLookup."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_profile(self, user_id: str) -> Profile | None:
        async with self._session_factory() as session:
            model = await session.get(ProfileModel, UUID(user_id))
            return model_to_profile(model) if model else None

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        ids = {UUID(uid) for uid in user_ids}
        if not ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(select(ProfileModel).where(ProfileModel.id.in_(ids)))
            return {str(m.id): model_to_profile(m) for m in result.scalars().all()}
