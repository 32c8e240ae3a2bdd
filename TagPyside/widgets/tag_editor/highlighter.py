"""Tag rendering as character formats, one text block at a time."""

from __future__ import annotations

from typing import Mapping

from PySide6.QtGui import QColor, QSyntaxHighlighter, QTextCharFormat, QTextDocument

from .overlay import TagOverlay


class TagHighlighter(QSyntaxHighlighter):
    """Paints the overlay's tags as colored pills.

    Tags never span a line, so Qt only asks for the blocks an edit touched and
    the cost of a keystroke does not depend on how many tags the document has.
    """

    def __init__(self, document: QTextDocument, overlay: TagOverlay) -> None:
        super().__init__(document)
        self._overlay = overlay
        self._enabled = True
        self._formats: dict[str, QTextCharFormat] = {}

    def set_styles(self, styles: Mapping[str, Mapping[str, str]]) -> None:
        formats: dict[str, QTextCharFormat] = {}
        for style_class, colors in styles.items():
            fmt = QTextCharFormat()
            fmt.setBackground(QColor(colors["background"]))
            fmt.setForeground(QColor(colors["foreground"]))
            formats[style_class] = fmt
        self._formats = formats
        self.rehighlight()

    def set_enabled(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self._enabled:
            return
        self._enabled = enabled
        self.rehighlight()

    def highlightBlock(self, text: str):
        if not self._enabled or not text:
            return
        offset = self.currentBlock().position()
        for tag in self._overlay.rendered_tags(offset, offset + len(text)):
            fmt = self._formats.get(tag.style_class)
            if fmt is None:
                continue
            self.setFormat(tag.range.start - offset, tag.range.end - tag.range.start, fmt)


__all__ = ["TagHighlighter"]
