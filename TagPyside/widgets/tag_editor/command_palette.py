"""Trigger-prefix recognition and the fixed insert menu."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Mapping

from PySide6.QtCore import QCoreApplication

from .grammar import DISPLAY_NAME_KEYS, TokenKind
from .text_buffer import TextBuffer

LOGGER = logging.getLogger("PyTagEdit.Palette")

DEFAULT_TRIGGER_CHAR = "/"
DEFAULT_DISPLAY_NAMES: dict[str, str] = {
    "variable": "Variable",
    "image": "Image",
    "video": "Video",
}
PALETTE_ORDER: tuple[TokenKind, ...] = (TokenKind.PROFILE, TokenKind.IMAGE, TokenKind.VIDEO)

DisplayNameSource = Callable[[str], str]


def qt_display_names(labels: Mapping[str, str] | None = None) -> DisplayNameSource:
    """Display-name source backed by ``QCoreApplication.translate``."""
    source = dict(DEFAULT_DISPLAY_NAMES)
    for key, value in dict(labels or {}).items():
        text = str(value or "").strip()
        if text:
            source[str(key)] = text

    def translate(key: str) -> str:
        text = source.get(key, key)
        return QCoreApplication.translate("TagEditor", text)

    return translate


@dataclass(frozen=True, slots=True)
class TriggerSpan:
    start: int
    end: int
    query: str = ""


@dataclass(frozen=True, slots=True)
class PaletteOption:
    kind: TokenKind
    label: str


@dataclass(frozen=True, slots=True)
class PaletteSession:
    span: TriggerSpan
    options: tuple[PaletteOption, ...]


def _trigger_regex(trigger_char: str) -> re.Pattern[str]:
    char = str(trigger_char or "")
    if len(char) != 1 or char.isspace() or re.match(r"\w", char, re.ASCII):
        LOGGER.warning("Unusable trigger character %r; using %r", trigger_char, DEFAULT_TRIGGER_CHAR)
        char = DEFAULT_TRIGGER_CHAR
    return re.compile(rf"{re.escape(char)}(\w*)$", re.ASCII)


class CommandPalette:
    """Offers Profile, Image and Video whenever the caret follows a trigger.

    The option list is never filtered by the word typed after the trigger.
    """

    def __init__(
            self,
            *,
            trigger_char: str = DEFAULT_TRIGGER_CHAR,
            display_names: DisplayNameSource | None = None,
            on_select: Callable[[TokenKind, TriggerSpan], None] | None = None,
    ) -> None:
        self._regex = _trigger_regex(trigger_char)
        self._display_names = display_names or qt_display_names()
        self._on_select = on_select

    def match_trigger(self, text_before_caret: str) -> TriggerSpan | None:
        text = str(text_before_caret or "")
        # The trigger word never crosses a line, only the caret line matters.
        line_start = text.rfind("\n") + 1
        m = self._regex.search(text, line_start)
        if m is None:
            return None
        return TriggerSpan(m.start(), m.end(), m.group(1))

    def options(self) -> tuple[PaletteOption, ...]:
        return tuple(
            PaletteOption(kind, self._display_names(DISPLAY_NAME_KEYS[kind]))
            for kind in PALETTE_ORDER
        )

    def open_at(self, buffer: TextBuffer) -> PaletteSession | None:
        line_start, prefix = buffer.line_before_caret()
        span = self.match_trigger(prefix)
        if span is None:
            return None
        span = TriggerSpan(line_start + span.start, line_start + span.end, span.query)
        return PaletteSession(span, self.options())

    def select(self, session: PaletteSession, kind: TokenKind, buffer: TextBuffer) -> None:
        span = session.span
        buffer.apply_edit(span.start, span.end, "")
        LOGGER.debug("palette selected %s, cleared [%d, %d)", kind.name, span.start, span.end)
        if self._on_select is not None:
            self._on_select(kind, span)


__all__ = [
    "CommandPalette",
    "DEFAULT_DISPLAY_NAMES",
    "DEFAULT_TRIGGER_CHAR",
    "DisplayNameSource",
    "PALETTE_ORDER",
    "PaletteOption",
    "PaletteSession",
    "TriggerSpan",
    "qt_display_names",
]
