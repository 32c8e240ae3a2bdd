from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QListWidget

from .helpers import _PALETTE_QSS

if TYPE_CHECKING:
    from .editor import TagEditor


class PalettePopup(QListWidget):
    """Non-focus list shown under the caret while a trigger word is active."""

    def __init__(self, editor: "TagEditor"):
        super().__init__(editor)
        self.hide()
        self.setFocusPolicy(Qt.NoFocus)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setUniformItemSizes(True)
        self.setSelectionMode(QListWidget.SingleSelection)
        self.setStyleSheet(_PALETTE_QSS)

    def move_selection(self, delta: int) -> None:
        count = self.count()
        if count <= 0:
            return
        row = max(0, self.currentRow())
        self.setCurrentRow((row + delta) % count)

    def fit_to_rows(self) -> None:
        rows = max(1, self.count())
        row_h = self.sizeHintForRow(0) if self.count() else self.fontMetrics().height() + 8
        width = max(180, self.sizeHintForColumn(0) + 32)
        self.resize(width, rows * row_h + 2 * self.frameWidth() + 4)


__all__ = ["PalettePopup"]
