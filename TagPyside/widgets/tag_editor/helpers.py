from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor

_PALETTE_KIND_ROLE = int(Qt.UserRole)

_TAG_STYLE_DEFAULTS: dict[str, dict[str, str]] = {
    "tag-profile": {"background": "#2D4F7C", "foreground": "#E6F0FF"},
    "tag-image": {"background": "#2F5E3A", "foreground": "#E3F7E6"},
    "tag-video": {"background": "#6B3A5E", "foreground": "#FBE6F4"},
}

_EDITOR_DEFAULTS = {
    "placeholder": "Type / to insert content",
    "visible_lines": 10,
    "word_wrap": True,
    "font_family": "Courier New",
    "font_size": 11,
}

_PALETTE_KIND_COLORS = {
    "profile": QColor("#9CDCFE"),
    "image": QColor("#4EC9B0"),
    "video": QColor("#C586C0"),
}

_PALETTE_QSS = """
QListWidget {
    background: #1f1f1f;
    border: 1px solid #3a3a3a;
    padding: 2px;
}
QListWidget::item {
    padding: 3px 4px;
}
QListWidget::item:selected {
    background: #264f78;
}
"""


def _valid_color_hex(value: object, fallback: str) -> str:
    text = str(value or "").strip()
    color = QColor(text)
    if text and color.isValid():
        return color.name()
    return fallback


def _coerce_bool(value: object, *, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "on", "y"}:
        return True
    if text in {"0", "false", "no", "off", "n", ""}:
        return False
    return bool(default)


def _coerce_int(value: object, *, default: int, minimum: int = 1) -> int:
    try:
        return max(minimum, int(value))
    except (TypeError, ValueError):
        return default


def normalize_tag_styles(styles: dict | None) -> dict[str, dict[str, str]]:
    """Merge user colors over the defaults, dropping anything unparsable."""
    merged: dict[str, dict[str, str]] = {}
    source = styles if isinstance(styles, dict) else {}
    for style_class, defaults in _TAG_STYLE_DEFAULTS.items():
        raw = source.get(style_class)
        raw = raw if isinstance(raw, dict) else {}
        merged[style_class] = {
            key: _valid_color_hex(raw.get(key), fallback)
            for key, fallback in defaults.items()
        }
    return merged


__all__ = [name for name in globals() if not name.startswith("__")]
