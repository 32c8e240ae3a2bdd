"""Insertion state machine: trigger or tag click, picker, then text splice.

States are ``IDLE`` and ``PICKER_OPEN(kind)``. A palette selection or a click
on one of this editor's tags opens the picker for that kind. A chosen payload
is spliced at the caret and the machine returns to ``IDLE``; cancelling
returns to ``IDLE`` without touching the buffer.

A request that arrives while a picker is already open replaces the pending one
(last request wins). The dropped request is logged at debug level.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from PySide6.QtCore import QObject, Signal

from .click_bridge import TagClickBridge, TagNotice
from .command_palette import DisplayNameSource, TriggerSpan, qt_display_names
from .grammar import TokenKind
from .text_buffer import TextBuffer

LOGGER = logging.getLogger("PyTagEdit.Insertion")


class ControllerState(enum.Enum):
    IDLE = "idle"
    PICKER_OPEN = "picker_open"


class RequestOrigin(enum.Enum):
    PALETTE = "palette"
    TAG = "tag"


@dataclass(frozen=True, slots=True)
class InsertionRequest:
    kind: TokenKind
    trigger_start: int
    trigger_end: int
    origin: RequestOrigin = RequestOrigin.PALETTE
    label: str = ""


class SelectionState(QObject):
    """Which picker is visible; shared by every view of one editor.

    Only ``InsertionController`` writes it, through ``set_state``; everyone
    else reads the properties or listens to ``changed``.
    """

    changed = Signal(object)  # SelectionState

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._active_kind: TokenKind | None = None
        self._dialog_open = False

    @property
    def active_kind(self) -> TokenKind | None:
        return self._active_kind

    @property
    def dialog_open(self) -> bool:
        return self._dialog_open

    def snapshot(self) -> tuple[TokenKind | None, bool]:
        return self._active_kind, self._dialog_open

    def set_state(self, active_kind: TokenKind | None, dialog_open: bool) -> None:
        """Controller-only setter; emits ``changed`` when the pair differs."""
        if (active_kind, bool(dialog_open)) == self.snapshot():
            return
        self._active_kind = active_kind
        self._dialog_open = bool(dialog_open)
        self.changed.emit(self)


@dataclass
class EditorContext:
    """State handed to every consumer of one editor instance."""

    selection: SelectionState
    profile_list: list[str] = field(default_factory=list)
    display_names: DisplayNameSource = field(default_factory=qt_display_names)

    def set_profile_list(self, profiles) -> None:
        cleaned: list[str] = []
        for item in profiles or []:
            key = str(item or "").strip()
            if key and key not in cleaned:
                cleaned.append(key)
        self.profile_list = cleaned


def format_payload(kind: TokenKind, payload: str) -> str:
    text = str(payload if payload is not None else "")
    if kind is TokenKind.PROFILE:
        return f"{{{text}}}"
    return f" {text} "


class InsertionController(QObject):
    pickerRequested = Signal(object)  # InsertionRequest
    pickerClosed = Signal()
    payloadInserted = Signal(str)

    def __init__(
            self,
            editor_id: str,
            buffer: TextBuffer,
            context: EditorContext,
            *,
            bridge: TagClickBridge | None = None,
            parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.editor_id = str(editor_id)
        self._buffer = buffer
        self._context = context
        self._request: InsertionRequest | None = None
        self._bridge: TagClickBridge | None = None
        if bridge is not None:
            self.subscribe(bridge)

    @property
    def context(self) -> EditorContext:
        return self._context

    @property
    def state(self) -> ControllerState:
        return ControllerState.IDLE if self._request is None else ControllerState.PICKER_OPEN

    @property
    def request(self) -> InsertionRequest | None:
        return self._request

    # --------- channel subscription ---------

    def subscribe(self, bridge: TagClickBridge) -> None:
        self.unsubscribe()
        bridge.tagActivated.connect(self.on_tag_activated)
        self._bridge = bridge

    def unsubscribe(self) -> None:
        if self._bridge is None:
            return
        try:
            self._bridge.tagActivated.disconnect(self.on_tag_activated)
        except (RuntimeError, TypeError):
            pass
        self._bridge = None

    # --------- transitions ---------

    def _open(self, request: InsertionRequest) -> None:
        if self._request is not None:
            LOGGER.debug(
                "%s: dropping pending %s request for %s",
                self.editor_id,
                self._request.kind.name,
                request.kind.name,
            )
        self._request = request
        self._context.selection.set_state(request.kind, True)
        LOGGER.debug("%s: picker open for %s (%s)", self.editor_id, request.kind.name, request.origin.value)
        self.pickerRequested.emit(request)

    def _close(self) -> None:
        self._request = None
        self._context.selection.set_state(None, False)
        self.pickerClosed.emit()

    def on_palette_select(self, kind: TokenKind, span: TriggerSpan | None = None) -> None:
        """Trigger text is already gone from the buffer when this runs."""
        start = span.start if span is not None else self._buffer.caret_offset()
        end = span.end if span is not None else start
        self._open(
            InsertionRequest(
                kind=kind,
                trigger_start=start,
                trigger_end=end,
                origin=RequestOrigin.PALETTE,
            )
        )

    def on_tag_activated(self, notice: object) -> None:
        if not isinstance(notice, TagNotice) or notice.editor_id != self.editor_id:
            return
        caret = self._buffer.caret_offset()
        self._open(
            InsertionRequest(
                kind=notice.kind,
                trigger_start=caret,
                trigger_end=caret,
                origin=RequestOrigin.TAG,
                label=notice.label,
            )
        )

    def choose_payload(self, payload: str) -> bool:
        request = self._request
        if request is None:
            return False
        text = format_payload(request.kind, payload)
        at = self._buffer.caret_offset()
        self._buffer.apply_edit(at, at, text)
        self._buffer.set_caret(at + len(text))
        self._close()
        self.payloadInserted.emit(text)
        return True

    def cancel(self) -> bool:
        if self._request is None:
            return False
        LOGGER.debug("%s: picker cancelled for %s", self.editor_id, self._request.kind.name)
        self._close()
        return True


__all__ = [
    "ControllerState",
    "EditorContext",
    "InsertionController",
    "InsertionRequest",
    "RequestOrigin",
    "SelectionState",
    "format_payload",
]
