from __future__ import annotations

import re
from dataclasses import dataclass

_MULTI_SPACE = re.compile(r"[ \t\u00a0]{2,}")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizedText:
    text: str
    lines: tuple[str, ...]
    collapsed_lines: tuple[str, ...]

    @property
    def lowered(self) -> str:
        return self.text.lower()

    @property
    def joined(self) -> str:
        return "\n".join(self.collapsed_lines)


def normalize_text(raw: str | None) -> NormalizedText:
    """Split OCR text into trimmed, non-empty lines.

    ``lines`` keeps the original spacing inside a line; ``collapsed_lines`` has runs
    of two or more spaces folded to one.
    """
    source = raw or ""
    text = source.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")
    lines = tuple(line.strip() for line in text.split("\n") if line.strip())
    collapsed = tuple(_MULTI_SPACE.sub(" ", line) for line in lines)
    return NormalizedText(text=text, lines=lines, collapsed_lines=collapsed)


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def contains_word(haystack: str, needle: str) -> bool:
    """Case-insensitive whole-word containment; ``needle`` may span several words."""
    pattern = r"(?<![\w])" + re.escape(needle.lower()) + r"(?![\w])"
    return re.search(pattern, haystack.lower()) is not None


def dedupe_comma_segments(value: str) -> str:
    seen: set[str] = set()
    parts: list[str] = []
    for segment in value.split(","):
        clean = collapse_whitespace(segment)
        key = clean.lower()
        if not clean or key in seen:
            continue
        seen.add(key)
        parts.append(clean)
    return ", ".join(parts)
