"""Ports the send path uses to talk back to whatever renders the view."""
from __future__ import annotations

from typing import Protocol

from collab_chat.domain.value_objects.enums import NoticeVariant


class Composer(Protocol):
    """The input a message is typed into."""

    @property
    def locked(self) -> bool: ...

    @property
    def content(self) -> str: ...

    def lock_and_clear(self) -> None: ...

    def restore(self, content: str) -> None: ...

    def release(self) -> None: ...


class Notifier(Protocol):
    def notify(
        self,
        title: str,
        description: str,
        variant: NoticeVariant = NoticeVariant.DEFAULT,
    ) -> None: ...
