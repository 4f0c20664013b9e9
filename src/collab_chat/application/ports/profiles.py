from __future__ import annotations

from typing import Iterable, Protocol

from collab_chat.domain.entities.profile import Profile


class ProfileLookup(Protocol):
    async def get_profile(self, user_id: str) -> Profile | None: ...

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]: ...
