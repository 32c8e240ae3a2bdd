"""Token shapes recognized inside the tag editor and their match order."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, Sequence


class GrammarError(ValueError):
    """Raised when a configured token pattern cannot be built."""


class TokenKind(enum.Enum):
    PROFILE = "profile"
    IMAGE = "image"
    VIDEO = "video"


# Stable keys handed to the display-name source.
DISPLAY_NAME_KEYS: dict[TokenKind, str] = {
    TokenKind.PROFILE: "variable",
    TokenKind.IMAGE: "image",
    TokenKind.VIDEO: "video",
}

DEFAULT_IMAGE_HOSTS: tuple[str, ...] = ("avtar.agiclass.cn",)
DEFAULT_IMAGE_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "gif", "bmp")
DEFAULT_VIDEO_HOSTS: tuple[str, ...] = ("bilibili.com",)

PROFILE_PATTERN = re.compile(r"\{\w+\}", re.ASCII)


@dataclass(frozen=True, slots=True)
class GrammarRule:
    kind: TokenKind
    pattern: re.Pattern[str]
    style_class: str

    @property
    def display_key(self) -> str:
        return DISPLAY_NAME_KEYS[self.kind]

    def finditer(self, text: str, start: int = 0, end: int | None = None):
        stop = len(text) if end is None else end
        for match in self.pattern.finditer(text, start, stop):
            # Empty matches are never tokens.
            if match.end() > match.start():
                yield match


def _host_alternation(hosts: Iterable[str]) -> str:
    cleaned = [str(host or "").strip().lower() for host in hosts]
    cleaned = [host for host in cleaned if host]
    if not cleaned:
        raise GrammarError("At least one host is required.")
    return "|".join(re.escape(host) for host in cleaned)


def _compile(source: str, kind: TokenKind) -> re.Pattern[str]:
    try:
        return re.compile(source, re.ASCII)
    except re.error as exc:
        raise GrammarError(f"Invalid {kind.value} pattern {source!r}: {exc}") from exc


def image_pattern(
        hosts: Iterable[str] = DEFAULT_IMAGE_HOSTS,
        extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
) -> re.Pattern[str]:
    exts = [str(ext or "").strip().lstrip(".").lower() for ext in extensions]
    exts = [re.escape(ext) for ext in exts if ext]
    suffix = rf"(?:\.(?:{'|'.join(exts)}))?" if exts else ""
    return _compile(rf"https?://(?:{_host_alternation(hosts)})\S+{suffix}", TokenKind.IMAGE)


def video_pattern(hosts: Iterable[str] = DEFAULT_VIDEO_HOSTS) -> re.Pattern[str]:
    return _compile(
        rf"https?://(?:www\.|m\.)?(?:{_host_alternation(hosts)})/video/\S+",
        TokenKind.VIDEO,
    )


def build_grammar(
        *,
        image_hosts: Iterable[str] = DEFAULT_IMAGE_HOSTS,
        image_extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
        video_hosts: Iterable[str] = DEFAULT_VIDEO_HOSTS,
) -> tuple[GrammarRule, ...]:
    """Return the rules in match order: profile, image, video."""
    return (
        GrammarRule(TokenKind.PROFILE, PROFILE_PATTERN, "tag-profile"),
        GrammarRule(TokenKind.IMAGE, image_pattern(image_hosts, image_extensions), "tag-image"),
        GrammarRule(TokenKind.VIDEO, video_pattern(video_hosts), "tag-video"),
    )


DEFAULT_GRAMMAR: tuple[GrammarRule, ...] = build_grammar()


def rule_for_kind(grammar: Sequence[GrammarRule], kind: TokenKind) -> GrammarRule | None:
    for rule in grammar:
        if rule.kind is kind:
            return rule
    return None


__all__ = [
    "DEFAULT_GRAMMAR",
    "DEFAULT_IMAGE_EXTENSIONS",
    "DEFAULT_IMAGE_HOSTS",
    "DEFAULT_VIDEO_HOSTS",
    "DISPLAY_NAME_KEYS",
    "GrammarError",
    "GrammarRule",
    "PROFILE_PATTERN",
    "TokenKind",
    "build_grammar",
    "image_pattern",
    "rule_for_kind",
    "video_pattern",
]
