"""Incremental recognition of one grammar rule over a mutable buffer."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, Iterator

from .grammar import GrammarRule, TokenKind
from .text_buffer import TextChange

LOGGER = logging.getLogger("PyTagEdit.Matcher")

_PRIORITIES = random.Random(0x7A6)


@dataclass(frozen=True, slots=True)
class MatchRange:
    start: int
    end: int
    kind: TokenKind
    label: str

    def intersects(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end

    def shifted(self, delta: int) -> "MatchRange":
        if not delta:
            return self
        return MatchRange(self.start + delta, self.end + delta, self.kind, self.label)


# ---------------- persistent treap ----------------
# Nodes are never changed once a layer holds them. ``shift`` is an offset that
# applies to the node and its whole subtree, so moving every range after an
# edit costs one new node instead of one per range.


class _Node:
    __slots__ = ("range", "priority", "left", "right", "size", "shift")

    def __init__(self, match: MatchRange, priority: float, left=None, right=None, shift: int = 0) -> None:
        self.range = match
        self.priority = priority
        self.left = left
        self.right = right
        self.size = 1 + _size(left) + _size(right)
        self.shift = shift


def _size(node: _Node | None) -> int:
    return node.size if node is not None else 0


def _shift(node: _Node | None, delta: int) -> _Node | None:
    if node is None or not delta:
        return node
    return _Node(node.range, node.priority, node.left, node.right, node.shift + delta)


def _settle(node: _Node) -> _Node:
    """Equivalent node whose pending shift is pushed down to its children."""
    if not node.shift:
        return node
    return _Node(
        node.range.shifted(node.shift),
        node.priority,
        _shift(node.left, node.shift),
        _shift(node.right, node.shift),
    )


def _split(node: _Node | None, key: int) -> tuple[_Node | None, _Node | None]:
    """Split into ranges starting before ``key`` and ranges starting at or after it."""
    if node is None:
        return None, None
    node = _settle(node)
    if node.range.start < key:
        lo, hi = _split(node.right, key)
        return _Node(node.range, node.priority, node.left, lo), hi
    lo, hi = _split(node.left, key)
    return lo, _Node(node.range, node.priority, hi, node.right)


def _merge(left: _Node | None, right: _Node | None) -> _Node | None:
    """Join two treaps where every range of ``left`` precedes ``right``."""
    if left is None:
        return right
    if right is None:
        return left
    if left.priority > right.priority:
        left = _settle(left)
        return _Node(left.range, left.priority, left.left, _merge(left.right, right))
    right = _settle(right)
    return _Node(right.range, right.priority, _merge(left, right.left), right.right)


def _build(ranges: Iterable[MatchRange]) -> _Node | None:
    """Treap over ranges given in start order, built in linear time."""
    spine: list[_Node] = []
    for match in ranges:
        node = _Node(match, _PRIORITIES.random())
        last = None
        while spine and spine[-1].priority < node.priority:
            last = spine.pop()
            last.size = 1 + _size(last.left) + _size(last.right)
        node.left = last
        if spine:
            spine[-1].right = node
        spine.append(node)
    root = spine[0] if spine else None
    while spine:
        last = spine.pop()
        last.size = 1 + _size(last.left) + _size(last.right)
    return root


def _collect(node: _Node | None, offset: int, start: float, end: float, out: list[MatchRange]) -> None:
    if node is None:
        return
    offset += node.shift
    node_start = node.range.start + offset
    node_end = node.range.end + offset
    # Ranges are disjoint and ordered: the left subtree ends by node_start and
    # the right subtree starts at node_end or later.
    if node_start > start:
        _collect(node.left, offset, start, end, out)
    if node_start < end and start < node_end:
        out.append(node.range.shifted(offset))
    if node_end < end:
        _collect(node.right, offset, start, end, out)


class OverlayLayer:
    """Ordered, non-overlapping ranges of one token kind.

    Layers are immutable. A rescan shares every untouched subtree with the
    layer it started from.
    """

    __slots__ = ("kind", "_root", "_ranges")

    def __init__(self, kind: TokenKind, ranges: Iterable[MatchRange] = ()) -> None:
        self.kind = kind
        self._root = _build(ranges)
        self._ranges: tuple[MatchRange, ...] | None = None

    @classmethod
    def _from_root(cls, kind: TokenKind, root: _Node | None) -> "OverlayLayer":
        layer = cls(kind)
        layer._root = root
        return layer

    def __iter__(self) -> Iterator[MatchRange]:
        return iter(self.ranges)

    def __len__(self) -> int:
        return _size(self._root)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OverlayLayer):
            return NotImplemented
        return self.kind is other.kind and len(self) == len(other) and self.ranges == other.ranges

    def __repr__(self) -> str:
        return f"OverlayLayer({self.kind.name}, {list(self.ranges)!r})"

    @property
    def ranges(self) -> tuple[MatchRange, ...]:
        if self._ranges is None:
            out: list[MatchRange] = []
            _collect(self._root, 0, float("-inf"), float("inf"), out)
            self._ranges = tuple(out)
        return self._ranges

    def range_at(self, pos: int) -> MatchRange | None:
        """Range with ``start <= pos < end``."""
        node = self._root
        offset = 0
        while node is not None:
            offset += node.shift
            if node.range.start + offset <= pos:
                if pos < node.range.end + offset:
                    return node.range.shifted(offset)
                node = node.right
            else:
                node = node.left
        return None

    def ranges_in(self, start: int, end: int) -> tuple[MatchRange, ...]:
        """Ranges intersecting ``[start, end)``."""
        out: list[MatchRange] = []
        _collect(self._root, 0, start, end, out)
        return tuple(out)


def _line_start(text: str, pos: int) -> int:
    return text.rfind("\n", 0, pos) + 1


def _line_end(text: str, pos: int) -> int:
    idx = text.find("\n", pos)
    return len(text) if idx < 0 else idx


class PatternMatcher:
    """Keeps an ``OverlayLayer`` in sync with buffer content for one rule.

    Tokens never span a line break, so every scan works one line at a time: a
    full scan visits every line, a rescan visits only the lines a change touched.
    Both produce the same ranges for the same text.
    """

    def __init__(self, rule: GrammarRule) -> None:
        self.rule = rule

    @property
    def kind(self) -> TokenKind:
        return self.rule.kind

    def empty(self) -> OverlayLayer:
        return OverlayLayer(self.rule.kind)

    def _scan_lines(self, text: str, start: int, end: int) -> list[MatchRange]:
        found: list[MatchRange] = []
        pos = start
        while pos <= end:
            stop = min(_line_end(text, pos), end)
            for match in self.rule.finditer(text, pos, stop):
                found.append(MatchRange(match.start(), match.end(), self.rule.kind, match.group(0)))
            pos = stop + 1
        return found

    def scan(self, text: str) -> OverlayLayer:
        return OverlayLayer(self.rule.kind, self._scan_lines(text, 0, len(text)))

    def rescan(self, layer: OverlayLayer, change: TextChange, text: str) -> OverlayLayer:
        """Update ``layer`` (positions before ``change``) to match ``text`` (after it)."""
        size = len(text)
        position = max(0, min(change.position, size))
        new_end = max(position, min(change.new_end, size))

        region_start = _line_start(text, position)
        region_end = _line_end(text, new_end)
        # Text after the changed span is unchanged, so its old offset is known.
        old_region_end = region_end - new_end + position + change.removed

        head, rest = _split(layer._root, region_start)
        dropped, tail = _split(rest, old_region_end)
        middle = self._scan_lines(text, region_start, region_end)
        delta = (new_end - position) - change.removed
        root = _merge(_merge(head, _build(middle)), _shift(tail, delta))

        LOGGER.debug(
            "rescan %s lines [%d, %d): dropped %d, found %d",
            self.rule.kind.name,
            region_start,
            region_end,
            _size(dropped),
            len(middle),
        )
        return OverlayLayer._from_root(self.rule.kind, root)


__all__ = [
    "MatchRange",
    "OverlayLayer",
    "PatternMatcher",
]
