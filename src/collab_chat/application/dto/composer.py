from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


@dataclass
class ComposerState:
    """In-memory composer. ``on_change`` fires after every transition."""

    content: str = ""
    locked: bool = False
    on_change: Callable[[ComposerState], None] | None = field(default=None, repr=False)

    def lock_and_clear(self) -> None:
        self.content = ""
        self.locked = True
        self._changed()

    def restore(self, content: str) -> None:
        self.content = content
        self.locked = False
        self._changed()

    def release(self) -> None:
        self.locked = False
        self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
