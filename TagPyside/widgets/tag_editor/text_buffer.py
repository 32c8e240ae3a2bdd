"""Minimal host-buffer surface consumed by the tag engine.

Two implementations ship here: ``StringBuffer`` keeps the text in memory and is
what the headless engine and the tests drive; ``QtTextBuffer`` adapts a
``QPlainTextEdit`` so the same engine runs against a live document.

Offsets are positions in ``current_text()``. ``QtTextBuffer`` uses Qt document
positions, which agree with Python string offsets for text without characters
outside the Basic Multilingual Plane.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from PySide6.QtGui import QTextCursor
from PySide6.QtWidgets import QPlainTextEdit


@dataclass(frozen=True, slots=True)
class TextChange:
    """One contiguous edit, in the shape of ``QTextDocument.contentsChange``."""

    position: int
    removed: int
    added: int

    @property
    def new_end(self) -> int:
        return self.position + self.added


ChangeListener = Callable[[TextChange], None]


class TextBuffer(Protocol):
    def current_text(self) -> str: ...

    def apply_edit(self, start: int, end: int, insert_text: str) -> None: ...

    def caret_offset(self) -> int: ...

    def line_before_caret(self) -> tuple[int, str]: ...

    def set_caret(self, offset: int) -> None: ...

    def add_change_listener(self, listener: ChangeListener) -> None: ...

    def remove_change_listener(self, listener: ChangeListener) -> None: ...


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(int(value), high))


class _ListenerMixin:
    def _init_listeners(self) -> None:
        self._listeners: list[ChangeListener] = []

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: TextChange) -> None:
        for listener in list(self._listeners):
            listener(change)


class StringBuffer(_ListenerMixin):
    def __init__(self, text: str = "", caret: int | None = None) -> None:
        self._init_listeners()
        self._text = str(text or "")
        self._caret = len(self._text) if caret is None else _clamp(caret, 0, len(self._text))

    def current_text(self) -> str:
        return self._text

    def apply_edit(self, start: int, end: int, insert_text: str) -> None:
        size = len(self._text)
        start = _clamp(start, 0, size)
        end = _clamp(end, start, size)
        insert = str(insert_text or "")
        if start == end and not insert:
            return
        self._text = self._text[:start] + insert + self._text[end:]

        # Same mapping QTextCursor applies to a cursor it does not own.
        if self._caret >= end:
            self._caret += len(insert) - (end - start)
        elif self._caret >= start:
            self._caret = start + len(insert)
        self._notify(TextChange(start, end - start, len(insert)))

    def caret_offset(self) -> int:
        return self._caret

    def line_before_caret(self) -> tuple[int, str]:
        start = self._text.rfind("\n", 0, self._caret) + 1
        return start, self._text[start:self._caret]

    def set_caret(self, offset: int) -> None:
        self._caret = _clamp(offset, 0, len(self._text))


class QtTextBuffer(_ListenerMixin):
    def __init__(self, editor: QPlainTextEdit) -> None:
        self._init_listeners()
        self._editor = editor
        self._document = None
        self.rebind_document()

    def rebind_document(self) -> None:
        doc = self._editor.document()
        if doc is self._document:
            return
        if self._document is not None:
            try:
                self._document.contentsChange.disconnect(self._on_contents_change)
            except (RuntimeError, TypeError):
                pass
        self._document = doc
        doc.contentsChange.connect(self._on_contents_change)

    def _on_contents_change(self, position: int, removed: int, added: int) -> None:
        if removed == 0 and added == 0:
            return
        self._notify(TextChange(int(position), int(removed), int(added)))

    def _max_position(self) -> int:
        return max(0, int(self._editor.document().characterCount()) - 1)

    def current_text(self) -> str:
        return self._editor.toPlainText()

    def apply_edit(self, start: int, end: int, insert_text: str) -> None:
        limit = self._max_position()
        start = _clamp(start, 0, limit)
        end = _clamp(end, start, limit)
        insert = str(insert_text or "")
        if start == end and not insert:
            return
        c = QTextCursor(self._editor.document())
        c.beginEditBlock()
        try:
            c.setPosition(start)
            c.setPosition(end, QTextCursor.KeepAnchor)
            c.insertText(insert)
        finally:
            c.endEditBlock()

    def caret_offset(self) -> int:
        return int(self._editor.textCursor().position())

    def line_before_caret(self) -> tuple[int, str]:
        cursor = self._editor.textCursor()
        block = cursor.block()
        start = int(block.position())
        return start, block.text()[: int(cursor.position()) - start]

    def set_caret(self, offset: int) -> None:
        cursor = self._editor.textCursor()
        cursor.setPosition(_clamp(offset, 0, self._max_position()))
        self._editor.setTextCursor(cursor)


__all__ = [
    "ChangeListener",
    "QtTextBuffer",
    "StringBuffer",
    "TextBuffer",
    "TextChange",
]
