from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, TypedDict

from TagPyside.widgets.tag_editor.command_palette import DEFAULT_DISPLAY_NAMES, DEFAULT_TRIGGER_CHAR
from TagPyside.widgets.tag_editor.grammar import (
    DEFAULT_IMAGE_EXTENSIONS,
    DEFAULT_IMAGE_HOSTS,
    DEFAULT_VIDEO_HOSTS,
)
from TagPyside.widgets.tag_editor.helpers import _EDITOR_DEFAULTS, _TAG_STYLE_DEFAULTS

SETTINGS_FILENAME = "settings.json"


class PaletteSettings(TypedDict, total=False):
    trigger_char: str


class GrammarSettings(TypedDict, total=False):
    image_hosts: list[str]
    image_extensions: list[str]
    video_hosts: list[str]


class TagColors(TypedDict, total=False):
    background: str
    foreground: str


class TagSettings(TypedDict, total=False):
    colors: dict[str, TagColors]  # keyed by style class, e.g. "tag-profile"


class LabelSettings(TypedDict, total=False):
    variable: str
    image: str
    video: str


class EditorSettings(TypedDict, total=False):
    placeholder: str
    visible_lines: int
    word_wrap: bool
    font_family: str
    font_size: int


class AppSettings(TypedDict, total=False):
    palette: PaletteSettings
    grammar: GrammarSettings
    tags: TagSettings
    labels: LabelSettings
    editor: EditorSettings
    profiles: list[str]


def default_settings_dir() -> Path:
    return Path.home() / ".config" / "pytagedit"


def default_settings_path() -> Path:
    return default_settings_dir() / SETTINGS_FILENAME


def default_app_settings() -> dict[str, Any]:
    defaults: AppSettings = {
        "palette": {"trigger_char": DEFAULT_TRIGGER_CHAR},
        "grammar": {
            "image_hosts": list(DEFAULT_IMAGE_HOSTS),
            "image_extensions": list(DEFAULT_IMAGE_EXTENSIONS),
            "video_hosts": list(DEFAULT_VIDEO_HOSTS),
        },
        "tags": {"colors": deepcopy(_TAG_STYLE_DEFAULTS)},
        "labels": dict(DEFAULT_DISPLAY_NAMES),
        "editor": dict(_EDITOR_DEFAULTS),
        "profiles": [],
    }
    return deepcopy(dict(defaults))
