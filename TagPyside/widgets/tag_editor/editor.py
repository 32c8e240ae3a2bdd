from __future__ import annotations

import logging
from typing import Mapping, Sequence

from PySide6.QtCore import QPoint, QPointF, Qt, QTimer, Signal
from PySide6.QtGui import QCursor, QFont, QKeyEvent, QKeySequence, QTextCursor
from PySide6.QtWidgets import QListWidgetItem, QPlainTextEdit

from .click_bridge import TagClickBridge, next_editor_id, tag_click_bridge
from .command_palette import CommandPalette, DEFAULT_TRIGGER_CHAR, PaletteSession, TriggerSpan
from .components import PalettePopup
from .grammar import DEFAULT_GRAMMAR, GrammarRule, TokenKind
from .helpers import (
    _EDITOR_DEFAULTS,
    _PALETTE_KIND_COLORS,
    _PALETTE_KIND_ROLE,
    _coerce_bool,
    _coerce_int,
    normalize_tag_styles,
)
from .highlighter import TagHighlighter
from .insertion import EditorContext, InsertionController, SelectionState
from .matcher import MatchRange
from .overlay import TagOverlay
from .text_buffer import QtTextBuffer

LOGGER = logging.getLogger("PyTagEdit.Editor")


class TagEditor(QPlainTextEdit):
    """Plain-text editor that shows recognized tokens as atomic, clickable tags.

    Typing the trigger character opens a three-entry palette; choosing an entry
    removes the trigger word and asks the host to show a picker through
    ``context.selection``. Clicking a tag asks for the same picker kind.
    """

    contentChanged = Signal(str, bool)  # text, is_edit
    pickerRequested = Signal(object)  # InsertionRequest
    pickerClosed = Signal()

    def __init__(
            self,
            parent=None,
            *,
            content: str = "",
            context: EditorContext | None = None,
            grammar: Sequence[GrammarRule] = DEFAULT_GRAMMAR,
            trigger_char: str = DEFAULT_TRIGGER_CHAR,
            bridge: TagClickBridge | None = None,
            options: Mapping[str, object] | None = None,
    ):
        super().__init__(parent)
        self.editor_id = next_editor_id()
        self._context = context or EditorContext(selection=SelectionState(self))
        self._bridge = bridge or tag_click_bridge()
        self._edit_mode = True
        self._atomic_adjusting = False
        self._last_caret = 0
        self._tag_hovering = False
        self._snap_pending = False
        self._palette_session: PaletteSession | None = None
        self._visible_lines = int(_EDITOR_DEFAULTS["visible_lines"])

        self._buffer = QtTextBuffer(self)
        self._overlay = TagOverlay(self.editor_id, grammar, bridge=self._bridge)
        self._palette = CommandPalette(
            trigger_char=trigger_char,
            display_names=self._context.display_names,
            on_select=self._on_palette_selected,
        )
        self._controller = InsertionController(
            self.editor_id,
            self._buffer,
            self._context,
            bridge=self._bridge,
            parent=self,
        )
        self._controller.pickerRequested.connect(self.pickerRequested)
        self._controller.pickerClosed.connect(self.pickerClosed)
        self._controller.payloadInserted.connect(self._on_payload_inserted)

        self._palette_popup = PalettePopup(self)
        self._palette_popup.itemClicked.connect(self._on_palette_item_clicked)

        self.viewport().setMouseTracking(True)
        self.textChanged.connect(self._on_text_changed)
        self.cursorPositionChanged.connect(self._enforce_atomic_cursor)
        self.selectionChanged.connect(self._enforce_atomic_cursor)

        self.setPlainText(str(content or ""))
        self._overlay.attach(self._buffer)
        self._overlay.add_update_listener(self._schedule_atomic_snap)
        # Created after the buffer so the overlay has rescanned before a block is repainted.
        self._highlighter = TagHighlighter(self.document(), self._overlay)
        self._highlighter.set_styles(normalize_tag_styles(None))
        self.apply_options(options or {})

    # --------- configuration ---------

    @property
    def context(self) -> EditorContext:
        return self._context

    @property
    def controller(self) -> InsertionController:
        return self._controller

    @property
    def overlay(self) -> TagOverlay:
        return self._overlay

    @property
    def palette(self) -> CommandPalette:
        return self._palette

    @property
    def text_buffer(self) -> QtTextBuffer:
        return self._buffer

    def apply_options(self, options: Mapping[str, object]) -> None:
        cfg = dict(_EDITOR_DEFAULTS)
        cfg.update({k: v for k, v in dict(options or {}).items() if v is not None})
        self.setPlaceholderText(str(cfg.get("placeholder") or ""))
        self.set_word_wrap_enabled(_coerce_bool(cfg.get("word_wrap"), default=True))
        font = QFont(
            str(cfg.get("font_family") or _EDITOR_DEFAULTS["font_family"]),
            _coerce_int(cfg.get("font_size"), default=int(_EDITOR_DEFAULTS["font_size"])),
        )
        font.setStyleHint(QFont.Monospace)
        self.setFont(font)
        self._visible_lines = _coerce_int(cfg.get("visible_lines"), default=int(_EDITOR_DEFAULTS["visible_lines"]))
        self._apply_fixed_height()

    def _apply_fixed_height(self) -> None:
        margins = self.contentsMargins()
        doc_margin = int(self.document().documentMargin())
        line_h = self.fontMetrics().lineSpacing()
        self.setFixedHeight(
            self._visible_lines * line_h + 2 * doc_margin + margins.top() + margins.bottom() + 2 * self.frameWidth()
        )

    def set_word_wrap_enabled(self, enabled: bool) -> None:
        self.setLineWrapMode(QPlainTextEdit.WidgetWidth if enabled else QPlainTextEdit.NoWrap)

    def set_tag_styles(self, styles: dict | None) -> None:
        self._highlighter.set_styles(normalize_tag_styles(styles))

    def set_content(self, text: str) -> None:
        self.hide_palette_popup()
        self.setPlainText(str(text or ""))

    def content(self) -> str:
        return self.toPlainText()

    def is_edit_mode(self) -> bool:
        return self._edit_mode

    def set_edit_mode(self, enabled: bool) -> None:
        """Preview mode shows the raw text read-only with no tags or palette."""
        enabled = bool(enabled)
        if enabled == self._edit_mode:
            return
        self._edit_mode = enabled
        self.setReadOnly(not enabled)
        LOGGER.debug("%s: edit mode %s", self.editor_id, "on" if enabled else "off")
        if not enabled:
            self.hide_palette_popup()
            self._controller.cancel()
        self._highlighter.set_enabled(enabled)

    # --------- atomic cursor and selection ---------

    def _enforce_atomic_cursor(self, *, nearest: bool = False) -> None:
        if self._atomic_adjusting or not self._edit_mode:
            return
        cursor = self.textCursor()
        atomic = self._overlay.atomic_ranges()
        anchor = int(cursor.anchor())
        pos = int(cursor.position())
        if cursor.hasSelection():
            new_anchor, new_pos = atomic.expand_selection(anchor, pos)
        else:
            new_anchor = new_pos = atomic.snap(pos, None if nearest else self._last_caret)
        self._last_caret = new_pos
        if (new_anchor, new_pos) == (anchor, pos):
            return
        self._atomic_adjusting = True
        try:
            adjusted = self.textCursor()
            adjusted.setPosition(new_anchor)
            adjusted.setPosition(new_pos, QTextCursor.KeepAnchor)
            self.setTextCursor(adjusted)
        finally:
            self._atomic_adjusting = False

    def _delete_atomic_span(self, *, forward: bool) -> bool:
        cursor = self.textCursor()
        if cursor.hasSelection():
            return False
        span = self._overlay.atomic_ranges().deletion_span(int(cursor.position()), forward=forward)
        if span is None:
            return False
        self._buffer.apply_edit(span[0], span[1], "")
        return True

    def _delete_word_span(self, *, forward: bool) -> bool:
        """Word deletion that takes whole tags instead of cutting into them."""
        cursor = self.textCursor()
        if not cursor.hasSelection():
            cursor.movePosition(
                QTextCursor.NextWord if forward else QTextCursor.PreviousWord,
                QTextCursor.KeepAnchor,
            )
        start, end = int(cursor.selectionStart()), int(cursor.selectionEnd())
        lo, hi = self._overlay.atomic_ranges().expand_selection(start, end)
        if (lo, hi) == (start, end):
            return False
        self._buffer.apply_edit(lo, hi, "")
        return True

    def _schedule_atomic_snap(self) -> None:
        # Overlay updates arrive inside contentsChange, while the edit is still running.
        if self._snap_pending:
            return
        self._snap_pending = True
        QTimer.singleShot(0, self._flush_atomic_snap)

    def _flush_atomic_snap(self) -> None:
        """An edit can grow a tag around a caret that never moved."""
        if not self._snap_pending:
            return
        self._snap_pending = False
        self._enforce_atomic_cursor(nearest=True)

    # --------- tag activation ---------

    def _tag_at_point(self, pos: QPoint) -> MatchRange | None:
        cursor = self.cursorForPosition(pos)
        geometry = self.blockBoundingGeometry(cursor.block()).translated(self.contentOffset())
        if not geometry.contains(QPointF(pos)):
            return None
        doc_pos = int(cursor.position())
        # The caret lands between characters; pick the character under the pointer.
        if pos.x() < self.cursorRect(cursor).x() and doc_pos > 0:
            doc_pos -= 1
        return self._overlay.tag_at(doc_pos)

    def mousePressEvent(self, event):
        if self.is_palette_popup_visible():
            self.hide_palette_popup()
        if self._edit_mode and event.button() == Qt.LeftButton and event.modifiers() == Qt.NoModifier:
            pos = event.position().toPoint() if hasattr(event, "position") else event.pos()
            match = self._tag_at_point(pos)
            if match is not None:
                self._buffer.set_caret(match.end)
                self._overlay.activate(match)
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        pos = event.position().toPoint() if hasattr(event, "position") else event.pos()
        over_tag = self._edit_mode and self._tag_at_point(pos) is not None
        if over_tag != self._tag_hovering:
            self._tag_hovering = over_tag
            self.viewport().setCursor(QCursor(Qt.PointingHandCursor if over_tag else Qt.IBeamCursor))
        super().mouseMoveEvent(event)

    def leaveEvent(self, event):
        if self._tag_hovering:
            self._tag_hovering = False
            self.viewport().setCursor(QCursor(Qt.IBeamCursor))
        super().leaveEvent(event)

    # --------- command palette ---------

    def is_palette_popup_visible(self) -> bool:
        return self._palette_popup.isVisible()

    def hide_palette_popup(self) -> None:
        self._palette_session = None
        self._palette_popup.hide()
        self._palette_popup.clear()

    def _refresh_palette(self) -> None:
        if not self._edit_mode or self.textCursor().hasSelection():
            self.hide_palette_popup()
            return
        session = self._palette.open_at(self._buffer)
        if session is None:
            self.hide_palette_popup()
            return
        if self._palette_session is not None and self.is_palette_popup_visible():
            # Same entries whatever follows the trigger; only the span moves.
            self._palette_session = session
            self._position_palette_popup()
            return
        self.show_palette_popup(session)

    def show_palette_popup(self, session: PaletteSession) -> None:
        popup = self._palette_popup
        popup.clear()
        for option in session.options:
            item = QListWidgetItem(option.label)
            item.setData(_PALETTE_KIND_ROLE, option.kind)
            color = _PALETTE_KIND_COLORS.get(option.kind.value)
            if color is not None:
                item.setForeground(color)
            popup.addItem(item)
        popup.setCurrentRow(0)
        self._palette_session = session
        popup.fit_to_rows()
        self._position_palette_popup()
        popup.show()
        popup.raise_()

    def _position_palette_popup(self) -> None:
        rect = self.cursorRect()
        popup = self._palette_popup
        x = rect.left() + self.viewport().x()
        y = rect.bottom() + self.viewport().y() + 2
        if y + popup.height() > self.height():
            y = max(0, rect.top() + self.viewport().y() - popup.height() - 2)
        x = max(0, min(x, self.width() - popup.width()))
        popup.move(x, y)

    def accept_palette_selection(self) -> bool:
        if not self.is_palette_popup_visible():
            return False
        item = self._palette_popup.currentItem()
        session = self._palette.open_at(self._buffer)
        if item is None or session is None:
            self.hide_palette_popup()
            return False
        kind = item.data(_PALETTE_KIND_ROLE)
        self.hide_palette_popup()
        if not isinstance(kind, TokenKind):
            return False
        self._palette.select(session, kind, self._buffer)
        return True

    def _on_palette_item_clicked(self, item: QListWidgetItem) -> None:
        self._palette_popup.setCurrentItem(item)
        self.accept_palette_selection()
        self.setFocus()

    def _on_palette_selected(self, kind: TokenKind, span: TriggerSpan) -> None:
        self._controller.on_palette_select(kind, span)

    def _on_payload_inserted(self, _text: str) -> None:
        self.ensureCursorVisible()
        self.setFocus()

    # --------- text and key handling ---------

    def _on_text_changed(self) -> None:
        self.contentChanged.emit(self.toPlainText(), self._edit_mode)

    def focusOutEvent(self, event):
        if self.is_palette_popup_visible():
            self.hide_palette_popup()
        super().focusOutEvent(event)

    def keyPressEvent(self, event: QKeyEvent):
        key = event.key()
        mods = event.modifiers()

        if self.is_palette_popup_visible():
            if key in (Qt.Key_Return, Qt.Key_Enter, Qt.Key_Tab):
                self.accept_palette_selection()
                event.accept()
                return
            if key == Qt.Key_Escape:
                self.hide_palette_popup()
                event.accept()
                return
            if key == Qt.Key_Up:
                self._palette_popup.move_selection(-1)
                event.accept()
                return
            if key == Qt.Key_Down:
                self._palette_popup.move_selection(1)
                event.accept()
                return

        if self._edit_mode:
            handled = False
            if event.matches(QKeySequence.DeleteStartOfWord):
                handled = self._delete_word_span(forward=False)
            elif event.matches(QKeySequence.DeleteEndOfWord):
                handled = self._delete_word_span(forward=True)
            elif not bool(mods & (Qt.ControlModifier | Qt.AltModifier | Qt.MetaModifier)):
                if key == Qt.Key_Backspace:
                    handled = self._delete_atomic_span(forward=False)
                elif key == Qt.Key_Delete:
                    handled = self._delete_atomic_span(forward=True)
            if handled:
                self._flush_atomic_snap()
                self._refresh_palette()
                event.accept()
                return

        super().keyPressEvent(event)
        self._flush_atomic_snap()

        text = event.text()
        typed = bool(text) and text.isprintable() and not bool(mods & (Qt.ControlModifier | Qt.MetaModifier))
        if typed or key in (Qt.Key_Backspace, Qt.Key_Delete):
            self._refresh_palette()
        elif key in (Qt.Key_Left, Qt.Key_Right, Qt.Key_Home, Qt.Key_End, Qt.Key_Return, Qt.Key_Enter):
            self.hide_palette_popup()


__all__ = ["TagEditor"]
