from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from smartfill.rules import DEFAULT_RULES, ExtractionRules
from smartfill.text_utils import NormalizedText, contains_word

_GROUP_SPACE = r"[ \u00a0\u202f]"
_NUMBER = (
    r"\d{1,3}(?:[.,']\d{3})+(?:[.,]\d{1,2})?"
    rf"|\d{{1,3}}(?:{_GROUP_SPACE}\d{{3}})+(?:[.,]\d{{1,2}})?"
    r"|\d+(?:[.,]\d{1,2})?"
)
_BOUNDED_NUMBER = rf"(?<![\w.,])(?:{_NUMBER})(?![\w%]|[.,]\d|\s*%)"

AMOUNT_TOKEN_RE = re.compile(
    rf"(?P<prefix>[€$£]\s?)?(?P<number>{_BOUNDED_NUMBER})(?P<suffix>\s?(?:EUR|USD|GBP|€)(?![A-Za-z]))?",
    re.IGNORECASE,
)
FALLBACK_AMOUNT_RE = re.compile(r"(?<![\w.,])\d{1,3}(?:[.,]\d{3})*[.,]\d{2}(?![\d]|[.,]\d)")

_GAP = r"[^\d\n]{0,24}?"
LABELED_AMOUNT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("amount_paid", re.compile(rf"\bamount\s+(?:paid|received)\b{_GAP}(?P<amount>{_BOUNDED_NUMBER})", re.I)),
    ("paid_on", re.compile(rf"(?P<amount>{_BOUNDED_NUMBER})\s*(?:[A-Z]{{3}}\s*)?paid\s+on\b", re.I)),
    ("amount_due", re.compile(rf"\bamount\s+due\b{_GAP}(?P<amount>{_BOUNDED_NUMBER})", re.I)),
    ("total", re.compile(rf"\b(?:(?:grand\s+)?total|totaal)\b{_GAP}(?P<amount>{_BOUNDED_NUMBER})", re.I)),
    ("balance_due", re.compile(rf"\bbalance\s+due\b{_GAP}(?P<amount>{_BOUNDED_NUMBER})", re.I)),
)

PAID_SOURCES = frozenset({"amount_paid", "paid_on"})
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class AmountCandidate:
    value: Decimal
    score: int
    position: int
    source: str

    @property
    def formatted(self) -> str:
        return format_amount(self.value)


def parse_amount(token: str) -> Decimal | None:
    """Parse a money token, resolving ``,``/``.`` as decimal or thousands separator.

    With both separators present the rightmost is the decimal point. A lone
    separator is a decimal point unless it is repeated or followed by exactly
    three digits, in which case it groups thousands: ``1,234`` is 1234 and
    ``12,50`` is 12.50, so a lone comma is not always the decimal point.
    Apostrophes and single spaces (including non-breaking ones) always group
    thousands.
    """
    text = re.sub(rf"'|{_GROUP_SPACE}", "", token.strip())
    if not text:
        return None
    comma, dot = text.rfind(","), text.rfind(".")
    if comma >= 0 and dot >= 0:
        decimal_sep, thousands_sep = (",", ".") if comma > dot else (".", ",")
        text = text.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif comma >= 0 or dot >= 0:
        sep = "," if comma >= 0 else "."
        parts = text.split(sep)
        if len(parts) > 2 or len(parts[-1]) == 3:
            text = text.replace(sep, "")
        else:
            text = text.replace(sep, ".")
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return abs(value)


def format_amount(value: Decimal) -> str:
    return format(abs(value).quantize(_CENT, rounding=ROUND_HALF_UP), "f")


def _looks_monetary(match: re.Match[str]) -> bool:
    number = match.group("number")
    if match.group("prefix") or match.group("suffix"):
        return True
    return bool(re.search(r"[.,]\d{1,2}$", number) or re.search(rf"[.,']\d{{3}}|{_GROUP_SPACE}\d{{3}}", number))


def labeled_candidates(source: NormalizedText, rules: ExtractionRules) -> list[AmountCandidate]:
    text = source.joined
    found: list[AmountCandidate] = []
    for key, pattern in LABELED_AMOUNT_PATTERNS:
        score = rules.amount_label_scores.get(key)
        if score is None:
            continue
        for m in pattern.finditer(text):
            value = parse_amount(m.group("amount"))
            if value is not None:
                found.append(AmountCandidate(value=value, score=score, position=m.start("amount"), source=key))
    return found


def context_score(line: str, rules: ExtractionRules) -> int | None:
    hits = [score for keyword, score in rules.amount_context_scores.items() if contains_word(line, keyword)]
    if not hits:
        return None
    return sum(hits)


def contextual_candidates(source: NormalizedText, rules: ExtractionRules) -> list[AmountCandidate]:
    found: list[AmountCandidate] = []
    offset = 0
    for line in source.collapsed_lines:
        score = context_score(line, rules)
        if score is not None:
            for m in AMOUNT_TOKEN_RE.finditer(line):
                if not _looks_monetary(m):
                    continue
                value = parse_amount(m.group("number"))
                if value is not None:
                    found.append(
                        AmountCandidate(value=value, score=score, position=offset + m.start("number"), source="context")
                    )
        offset += len(line) + 1
    return found


def select_best(candidates: list[AmountCandidate]) -> AmountCandidate | None:
    """Highest score wins; equal scores go to the later position in the document."""
    if not candidates:
        return None
    return max(candidates, key=lambda c: (c.score, c.position))


def fallback_candidate(source: NormalizedText) -> AmountCandidate | None:
    m = FALLBACK_AMOUNT_RE.search(source.joined)
    if not m:
        return None
    value = parse_amount(m.group(0))
    if value is None:
        return None
    return AmountCandidate(value=value, score=0, position=m.start(), source="fallback")


def detect_amount(source: NormalizedText, rules: ExtractionRules = DEFAULT_RULES) -> AmountCandidate | None:
    best = select_best(labeled_candidates(source, rules) + contextual_candidates(source, rules))
    if best is not None:
        return best
    return fallback_candidate(source)
