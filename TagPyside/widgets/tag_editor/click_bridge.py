"""Process-wide channel carrying tag activations to their owning editor."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from PySide6.QtCore import QObject, QTimer, Signal

from .grammar import TokenKind

LOGGER = logging.getLogger("PyTagEdit.ClickBridge")

_editor_ids = itertools.count(1)


def next_editor_id() -> str:
    return f"tag-editor-{next(_editor_ids)}"


@dataclass(frozen=True, slots=True)
class TagNotice:
    editor_id: str
    kind: TokenKind
    label: str


class TagClickBridge(QObject):
    """Broadcasts ``TagNotice`` values one event-loop turn after ``emit``.

    Every subscriber sees every notice; ``editor_id`` tells a subscriber
    whether the tag belongs to its own editor.
    """

    tagActivated = Signal(object)  # TagNotice

    def emit(self, notice: TagNotice) -> None:
        if not isinstance(notice, TagNotice):
            return
        QTimer.singleShot(0, lambda: self._deliver(notice))

    def _deliver(self, notice: TagNotice) -> None:
        LOGGER.debug("tag activated: %s %s (%s)", notice.kind.name, notice.label, notice.editor_id)
        self.tagActivated.emit(notice)


_BRIDGE: TagClickBridge | None = None


def tag_click_bridge() -> TagClickBridge:
    global _BRIDGE
    if _BRIDGE is None:
        _BRIDGE = TagClickBridge()
    return _BRIDGE


__all__ = [
    "TagClickBridge",
    "TagNotice",
    "next_editor_id",
    "tag_click_bridge",
]
