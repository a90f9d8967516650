from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

MONTHS: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sept": 9,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_MONTH_ALTERNATION = "|".join(sorted(MONTHS, key=len, reverse=True))

SHORT_DATE_RE = re.compile(r"(?<![\d.,/-])(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4}|\d{2})(?![\d])")
ISO_DATE_RE = re.compile(r"(?<![\d.,/-])(\d{4})-(\d{1,2})-(\d{1,2})(?![\d])")
LONG_DATE_MDY_RE = re.compile(
    rf"\b({_MONTH_ALTERNATION})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})\b",
    re.IGNORECASE,
)
LONG_DATE_DMY_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_ALTERNATION})\.?,?\s+(\d{{4}})\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedDate:
    iso: str
    position: int
    ambiguous: bool = False


def expand_year(value: str) -> int:
    year = int(value)
    if len(value) == 2:
        return 2000 + year
    return year


def _safe_iso(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_numeric_date(first: str, second: str, year: str) -> tuple[str, bool] | None:
    """Resolve ``first``/``second`` into day and month.

    A component above 12 must be the day. When both fit either slot the European
    day-first reading is used and the result is flagged ambiguous unless the two
    components are equal.
    """
    a, b = int(first), int(second)
    if a > 12:
        day, month = a, b
    elif b > 12:
        month, day = a, b
    else:
        day, month = a, b
    iso = _safe_iso(expand_year(year), month, day)
    if iso is None:
        return None
    return iso, (a <= 12 and b <= 12 and a != b)


def find_short_dates(text: str) -> list[ParsedDate]:
    found: list[ParsedDate] = []
    for m in SHORT_DATE_RE.finditer(text):
        parsed = parse_numeric_date(m.group(1), m.group(2), m.group(3))
        if parsed:
            found.append(ParsedDate(iso=parsed[0], position=m.start(), ambiguous=parsed[1]))
    for m in ISO_DATE_RE.finditer(text):
        iso = _safe_iso(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if iso:
            found.append(ParsedDate(iso=iso, position=m.start()))
    return sorted(found, key=lambda d: d.position)


def find_long_dates(text: str) -> list[ParsedDate]:
    found: dict[int, ParsedDate] = {}
    for m in LONG_DATE_MDY_RE.finditer(text):
        iso = _safe_iso(int(m.group(3)), MONTHS[m.group(1).lower()], int(m.group(2)))
        if iso:
            found[m.start()] = ParsedDate(iso=iso, position=m.start())
    for m in LONG_DATE_DMY_RE.finditer(text):
        iso = _safe_iso(int(m.group(3)), MONTHS[m.group(2).lower()], int(m.group(1)))
        if iso and not any(abs(pos - m.start()) < 4 for pos in found):
            found[m.start()] = ParsedDate(iso=iso, position=m.start())
    return [found[pos] for pos in sorted(found)]


def first_date_in(text: str) -> ParsedDate | None:
    candidates = find_short_dates(text) + find_long_dates(text)
    if not candidates:
        return None
    return min(candidates, key=lambda d: d.position)


def contains_date(text: str) -> bool:
    return bool(
        SHORT_DATE_RE.search(text)
        or ISO_DATE_RE.search(text)
        or LONG_DATE_MDY_RE.search(text)
        or LONG_DATE_DMY_RE.search(text)
    )
