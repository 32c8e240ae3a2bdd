from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

LOGGER = logging.getLogger("PyTagEdit.Settings")


class SettingsStoreError(RuntimeError):
    """Raised when the settings file cannot be written."""


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Fill keys missing from ``data`` with defaults, recursing into dicts."""
    merged = deepcopy(dict(data))
    for key, default_value in defaults.items():
        current = merged.get(key)
        if key not in merged:
            merged[key] = deepcopy(default_value)
        elif isinstance(current, dict) and isinstance(default_value, dict):
            merged[key] = deep_merge_defaults(current, default_value)
    return merged


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    current: Any = data
    for part in str(key or "").split("."):
        if not part:
            continue
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def dot_set(data: dict[str, Any], key: str, value: Any) -> None:
    parts = [part for part in str(key or "").split(".") if part]
    if not parts:
        raise ValueError("Key cannot be empty.")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


class JsonSettingsStore:
    """Settings file with defaults merged underneath and dot-key access.

    A file that is missing or unreadable never stops the editor: the store
    falls back to defaults and records the problem in ``last_error``.
    """

    def __init__(self, path: Path, defaults: Mapping[str, Any]) -> None:
        self.path = Path(path)
        self.defaults: dict[str, Any] = deepcopy(dict(defaults))
        self.data: dict[str, Any] = deepcopy(self.defaults)
        self.dirty = False
        self.last_error: str | None = None

    def load(self) -> dict[str, Any]:
        self.last_error = None
        loaded: dict[str, Any] = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raw = None
                self.last_error = str(exc)
            if isinstance(raw, dict):
                loaded = raw
            elif self.last_error is None:
                self.last_error = f"Settings root in '{self.path}' must be a JSON object."
        if self.last_error:
            LOGGER.warning("Ignoring settings file %s: %s", self.path, self.last_error)
        self.data = deep_merge_defaults(loaded, self.defaults)
        self.dirty = False
        return self.data

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.data, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            raise SettingsStoreError(f"Could not write settings file '{self.path}': {exc}") from exc
        self.dirty = False

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def set(self, key: str, value: Any) -> bool:
        if self.get(key, object()) == value:
            return False
        dot_set(self.data, key, value)
        self.dirty = True
        return True
