from __future__ import annotations

from dataclasses import dataclass

ANIMAL_AVATARS = (
    "/animals/fox.gif",
    "/animals/panda.gif",
    "/animals/penguin.gif",
    "/animals/cat.gif",
    "/animals/dog.gif",
    "/animals/koala.gif",
    "/animals/lion.gif",
    "/animals/tiger.gif",
    "/animals/bear.gif",
    "/animals/rabbit.gif",
    "/animals/elephant.gif",
    "/animals/monkey.gif",
    "/animals/owl.gif",
    "/animals/wolf.gif",
    "/animals/raccoon.gif",
)

DEFAULT_DISPLAY_NAME = "Creator"


def fallback_avatar(user_id: str) -> str:
    """Stable animal avatar for users who never uploaded one."""
    return ANIMAL_AVATARS[sum(ord(ch) for ch in user_id) % len(ANIMAL_AVATARS)]


@dataclass(frozen=True, slots=True)
class Profile:
    id: str
    display_name: str
    avatar_ref: str

    @classmethod
    def from_row(
        cls, user_id: str, full_name: str | None, avatar_url: str | None,
    ) -> Profile:
        return cls(
            id=user_id,
            display_name=full_name or DEFAULT_DISPLAY_NAME,
            avatar_ref=avatar_url or fallback_avatar(user_id),
        )

    @classmethod
    def unknown(cls, user_id: str) -> Profile:
        return cls.from_row(user_id, None, None)
