from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from TagPyside.widgets.tag_editor.command_palette import DisplayNameSource, qt_display_names
from TagPyside.widgets.tag_editor.grammar import (
    DEFAULT_GRAMMAR,
    GrammarError,
    GrammarRule,
    build_grammar,
)
from src.settings_models import default_app_settings, default_settings_path
from src.settings_store import JsonSettingsStore

LOGGER = logging.getLogger("PyTagEdit.Settings")


def _string_list(value: object) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out: list[str] = []
    for item in value:
        text = str(item or "").strip()
        if text and text not in out:
            out.append(text)
    return out


class SettingsManager:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path).expanduser() if path else default_settings_path()
        self._store = JsonSettingsStore(self.path, default_app_settings())

    @property
    def last_error(self) -> str | None:
        return self._store.last_error

    def load_all(self) -> dict[str, Any]:
        return self._store.load()

    def save_all(self, *, only_dirty: bool = False) -> bool:
        if only_dirty and not self._store.dirty:
            return False
        self._store.save()
        return True

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        return self._store.set(key, value)

    # --------- derived editor configuration ---------

    def trigger_char(self) -> str:
        return str(self.get("palette.trigger_char") or "")

    def grammar(self) -> tuple[GrammarRule, ...]:
        try:
            return build_grammar(
                image_hosts=_string_list(self.get("grammar.image_hosts")),
                image_extensions=_string_list(self.get("grammar.image_extensions")),
                video_hosts=_string_list(self.get("grammar.video_hosts")),
            )
        except GrammarError as exc:
            LOGGER.warning("Invalid grammar settings, using defaults: %s", exc)
            return DEFAULT_GRAMMAR

    def display_names(self) -> DisplayNameSource:
        labels = self.get("labels")
        return qt_display_names(labels if isinstance(labels, dict) else None)

    def tag_styles(self) -> dict:
        colors = self.get("tags.colors")
        return colors if isinstance(colors, dict) else {}

    def editor_options(self) -> dict[str, Any]:
        options = self.get("editor")
        return dict(options) if isinstance(options, dict) else {}

    def profiles(self) -> list[str]:
        return _string_list(self.get("profiles"))
