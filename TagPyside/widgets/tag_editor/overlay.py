"""Tag layers over a buffer and the atomic-range rules derived from them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .click_bridge import TagClickBridge, TagNotice
from .grammar import DEFAULT_GRAMMAR, GrammarRule, TokenKind
from .matcher import MatchRange, OverlayLayer, PatternMatcher
from .text_buffer import TextBuffer, TextChange

LOGGER = logging.getLogger("PyTagEdit.Overlay")


class AtomicRanges:
    """Atomic-span queries over a set of layers.

    Ranges from different layers may overlap; overlapping ranges act as one
    merged unit. Each query only visits the ranges around the positions asked
    about, so its cost does not grow with the number of tags in the buffer.
    """

    def __init__(self, layers: Iterable[OverlayLayer]) -> None:
        self._layers = tuple(layers)

    def _overlapping(self, start: int, end: int) -> list[MatchRange]:
        return [r for layer in self._layers for r in layer.ranges_in(start, end)]

    def _merged(self, start: int, end: int) -> tuple[int, int]:
        """Grow ``[start, end)`` over every range that overlaps it."""
        while True:
            lo, hi = start, end
            for r in self._overlapping(start, end):
                lo = min(lo, r.start)
                hi = max(hi, r.end)
            if (lo, hi) == (start, end):
                return start, end
            start, end = lo, hi

    def span_around(self, pos: int) -> tuple[int, int] | None:
        """Span with ``start < pos < end``."""
        inside = [r for r in self._overlapping(pos, pos + 1) if r.start < pos]
        if not inside:
            return None
        return self._merged(min(r.start for r in inside), max(r.end for r in inside))

    def snap(self, pos: int, previous: int | None = None) -> int:
        """Move an interior position to the span edge.

        Movement forward lands on the end and movement backward on the start;
        without a previous position the nearer edge wins.
        """
        span = self.span_around(pos)
        if span is None:
            return pos
        start, end = span
        if previous is not None and previous != pos:
            return end if pos > previous else start
        return start if (pos - start) <= (end - pos) else end

    def expand_selection(self, anchor: int, position: int) -> tuple[int, int]:
        """Grow a selection so no span is partially covered; keeps direction."""
        if anchor == position:
            return anchor, position
        lo, hi = min(anchor, position), max(anchor, position)
        lo_span = self.span_around(lo)
        hi_span = self.span_around(hi)
        if lo_span is not None:
            lo = lo_span[0]
        if hi_span is not None:
            hi = hi_span[1]
        return (lo, hi) if anchor <= position else (hi, lo)

    def deletion_span(self, caret: int, *, forward: bool) -> tuple[int, int] | None:
        """Whole span removed by one Backspace (or Delete when ``forward``)."""
        if forward:
            edge = [r for r in self._overlapping(caret, caret + 1) if r.start == caret]
        else:
            edge = [r for r in self._overlapping(caret - 1, caret) if r.end == caret]
        if not edge:
            return None
        span = self._merged(edge[0].start, edge[0].end)
        if span[0 if forward else 1] != caret:
            return None
        return span


@dataclass(frozen=True, slots=True)
class RenderedTag:
    range: MatchRange
    style_class: str

    @property
    def label(self) -> str:
        return self.range.label

    @property
    def kind(self) -> TokenKind:
        return self.range.kind


class TagOverlay:
    """One incremental layer per grammar rule, kept in step with a buffer.

    The overlay listens to buffer changes, so after any edit ``layers`` already
    reflect the new text by the time the edit call returns.
    """

    def __init__(
            self,
            editor_id: str,
            grammar: Sequence[GrammarRule] = DEFAULT_GRAMMAR,
            *,
            bridge: TagClickBridge | None = None,
    ) -> None:
        self.editor_id = str(editor_id)
        self._matchers = [PatternMatcher(rule) for rule in grammar]
        self._layers: dict[TokenKind, OverlayLayer] = {m.kind: m.empty() for m in self._matchers}
        self._atomic: AtomicRanges | None = None
        self._buffer: TextBuffer | None = None
        self._bridge = bridge
        self._listeners: list[Callable[[], None]] = []

    # --------- buffer binding ---------

    def attach(self, buffer: TextBuffer) -> None:
        self.detach()
        self._buffer = buffer
        buffer.add_change_listener(self._on_buffer_change)
        self.refresh()

    def detach(self) -> None:
        if self._buffer is not None:
            self._buffer.remove_change_listener(self._on_buffer_change)
        self._buffer = None

    def add_update_listener(self, listener: Callable[[], None]) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def _changed(self) -> None:
        self._atomic = None
        for listener in list(self._listeners):
            listener()

    def refresh(self) -> None:
        text = self._buffer.current_text() if self._buffer is not None else ""
        self._layers = {m.kind: m.scan(text) for m in self._matchers}
        LOGGER.debug("%s: full scan found %d tags", self.editor_id, sum(len(layer) for layer in self._layers.values()))
        self._changed()

    def _on_buffer_change(self, change: TextChange) -> None:
        text = self._buffer.current_text() if self._buffer is not None else ""
        self.apply_change(change, text)

    def apply_change(self, change: TextChange, text: str) -> None:
        self._layers = {
            m.kind: m.rescan(self._layers.get(m.kind, m.empty()), change, text)
            for m in self._matchers
        }
        self._changed()

    # --------- queries ---------

    @property
    def grammar(self) -> tuple[GrammarRule, ...]:
        return tuple(m.rule for m in self._matchers)

    def layer(self, kind: TokenKind) -> OverlayLayer:
        return self._layers.get(kind, OverlayLayer(kind))

    def layers(self) -> tuple[OverlayLayer, ...]:
        return tuple(self._layers[m.kind] for m in self._matchers)

    def atomic_ranges(self) -> AtomicRanges:
        if self._atomic is None:
            self._atomic = AtomicRanges(self._layers.values())
        return self._atomic

    def rendered_tags(self, start: int = 0, end: int | None = None) -> list[RenderedTag]:
        tags: list[RenderedTag] = []
        for matcher in self._matchers:
            layer = self._layers[matcher.kind]
            ranges = layer.ranges if end is None else layer.ranges_in(start, end)
            tags.extend(RenderedTag(r, matcher.rule.style_class) for r in ranges)
        return tags

    def tag_at(self, pos: int) -> MatchRange | None:
        """First tag, in grammar order, whose range holds ``pos``."""
        for matcher in self._matchers:
            found = self._layers[matcher.kind].range_at(pos)
            if found is not None:
                return found
        return None

    # --------- activation ---------

    def activate(self, match: MatchRange) -> bool:
        if self._bridge is None:
            return False
        self._bridge.emit(TagNotice(self.editor_id, match.kind, match.label))
        return True

    def activate_at(self, pos: int) -> bool:
        match = self.tag_at(pos)
        if match is None:
            return False
        return self.activate(match)


__all__ = [
    "AtomicRanges",
    "RenderedTag",
    "TagOverlay",
]
