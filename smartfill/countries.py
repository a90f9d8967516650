from __future__ import annotations

import re
from typing import Callable

from smartfill.locale_tables import (
    CITY_COUNTRIES,
    EU_COUNTRIES,
    EU_COUNTRY_ALIASES,
    GLOBAL_COUNTRY_KEYWORDS,
    ISO_COUNTRY_CODES,
    country_code_for_label,
    normalize_country_code,
)
from smartfill.text_utils import collapse_whitespace

CountryStrategy = Callable[[str, str], "str | None"]

_ISO_TOKEN_RE = re.compile(r"(?<![A-Za-z.])([A-Z]{2})(?![A-Za-z.])")


def _last_position(text: str, needle: str) -> int:
    pattern = r"(?<![\w])" + re.escape(needle.lower()) + r"(?![\w])"
    positions = [m.start() for m in re.finditer(pattern, text.lower())]
    return positions[-1] if positions else -1


def _latest_keyword(text: str, table: dict[str, str]) -> str | None:
    best_code: str | None = None
    best_pos = -1
    for keyword, code in table.items():
        pos = _last_position(text, keyword)
        if pos > best_pos:
            best_code, best_pos = code, pos
    return best_code


def from_iso_code(vendor: str, address: str) -> str | None:
    # Bare codes are only trusted inside the address; vendor names such as
    # "Acme IT Services" would otherwise resolve to Italy.
    for m in reversed(list(_ISO_TOKEN_RE.finditer(address))):
        if m.group(1) in ISO_COUNTRY_CODES:
            return normalize_country_code(m.group(1))
    return None


def from_eu_name(vendor: str, address: str) -> str | None:
    table = {name.lower(): code for code, name in EU_COUNTRIES}
    table.update(EU_COUNTRY_ALIASES)
    return _latest_keyword(f"{vendor}\n{address}", table)


def from_global_keyword(vendor: str, address: str) -> str | None:
    return _latest_keyword(f"{vendor}\n{address}", GLOBAL_COUNTRY_KEYWORDS)


def from_city(vendor: str, address: str) -> str | None:
    # Cities are matched against address text only: "London Drugs" is a vendor, not a location.
    return _latest_keyword(address, CITY_COUNTRIES)


def from_last_address_segment(vendor: str, address: str) -> str | None:
    segments = [s for s in address.split(",") if s.strip()]
    if not segments:
        return None
    tail = re.sub(r"\d+", " ", segments[-1])
    tail = re.sub(r"\b[A-Z]{2}\b", " ", tail)
    tail = collapse_whitespace(tail).lower()
    if not tail:
        return None
    return country_code_for_label(tail) or CITY_COUNTRIES.get(tail)


COUNTRY_STRATEGIES: tuple[CountryStrategy, ...] = (
    from_iso_code,
    from_eu_name,
    from_global_keyword,
    from_city,
    from_last_address_segment,
)


def detect_country(vendor: str | None, address: str | None) -> str | None:
    vendor_text = vendor or ""
    address_text = address or ""
    if not vendor_text.strip() and not address_text.strip():
        return None
    for strategy in COUNTRY_STRATEGIES:
        code = strategy(vendor_text, address_text)
        if code:
            return code
    return None
