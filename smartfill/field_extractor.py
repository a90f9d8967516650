from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from schemas.expense_schema import ExtractedFields
from smartfill.amounts import PAID_SOURCES, detect_amount
from smartfill.countries import detect_country
from smartfill.dates import ParsedDate, contains_date, find_long_dates, find_short_dates, first_date_in
from smartfill.locale_tables import (
    CURRENCY_MARKERS,
    ISO_COUNTRY_CODES,
    LEGAL_ENTITY_SUFFIXES,
    normalize_country_code,
)
from smartfill.rules import DEFAULT_RULES, ExtractionRules
from smartfill.text_utils import NormalizedText, collapse_whitespace, dedupe_comma_segments, normalize_text

logger = logging.getLogger(__name__)

_DOCUMENT_TYPE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("invoice", "invoice"),
    ("receipt", "receipt"),
    ("statement", "statement"),
    ("bill", "invoice"),
    ("factuur", "invoice"),
)

_INVOICE_LABEL = r"(?:invoice|receipt|factuur)\s*(?:(?:number|nummer|no|nr)\b\.?|#)"
_INVOICE_TOKEN = r"[A-Za-z0-9][A-Za-z0-9\-_/]*"
INVOICE_NUMBER_RE = re.compile(
    rf"{_INVOICE_LABEL}\s*[:\-]?\s*(?P<token>{_INVOICE_TOKEN})[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_INVOICE_LABEL_LINE_RE = re.compile(rf"^{_INVOICE_LABEL}\s*[:\-]?\s*(?P<rest>.*)$", re.IGNORECASE)
_SINGLE_TOKEN_RE = re.compile(rf"^{_INVOICE_TOKEN}$")
_TOKEN_PAIR_RE = re.compile(r"^(?P<a>[A-Za-z0-9]+)\s*(?:-|–|\s)\s*(?P<b>[A-Za-z0-9]+)$")

_BILL_TO_RE = re.compile(r"\bbill(?:ed)?\s+to\b", re.IGNORECASE)
_BLOCK_BOUNDARY_RE = re.compile(
    r"^(?:invoice\b|factuur\b|page\s+\d+|-{3,}|={3,})|\bbill(?:ed)?\s+to\b",
    re.IGNORECASE,
)
LEGAL_SUFFIX_RE = re.compile(
    r"(?<![\w.])(?:"
    + "|".join(re.escape(s) for s in sorted(LEGAL_ENTITY_SUFFIXES, key=len, reverse=True))
    + r")(?![\w])",
    re.IGNORECASE,
)
_FIELD_LINE_RE = re.compile(
    r"\b(?:total|subtotal|amount|balance|due|invoice\s*(?:number|no|nr|#)|date)\b|[€$£]\s?\d",
    re.IGNORECASE,
)
_CONTACT_RE = re.compile(r"@|https?://|www\.", re.IGNORECASE)
_ADDRESS_NOISE_RE = re.compile(
    r"\b(?:receipt|invoice|factuur|total|subtotal|bill\s+to|ship\s+to|e-?mail|tax\s+id|vat|btw|kvk|iban|bic"
    r"|phone|tel|date|description|amount|page|qty|customer)\b|@|https?://|www\.",
    re.IGNORECASE,
)
_LONG_DIGITS_RE = re.compile(r"\d{4,}")

_VAT_PREFIXED_RE = re.compile(
    r"\b(?P<cc>[A-Z]{2})\s+VAT\b[^\w\n]*"
    r"(?P<num>[A-Z0-9][A-Z0-9]*(?:[ .][0-9][A-Z0-9]*)*)"
)
_VAT_LABELLED_RE = re.compile(
    r"\b(?:vat|btw)(?:[\s\-]*(?:number|nummer|no\.?|nr\.?|id|reg(?:istration)?))?\s*[:#.]?\s*"
    r"(?P<num>(?:[A-Z]{2}\s?)?\d[\dA-Z]*(?:[ .]\d[\dA-Z]*)*)",
    re.IGNORECASE,
)
_VAT_RATE_RES = (
    re.compile(r"(?<![\d.,])(?P<rate>\d{1,2})(?:[.,]0+)?\s*%\s*(?:vat|btw)\b", re.IGNORECASE),
    re.compile(r"\b(?:vat|btw)\b[^\d\n%]{0,12}(?P<rate>\d{1,2})(?:[.,]0+)?\s*%", re.IGNORECASE),
)
_REVERSE_CHARGE_RE = re.compile(r"reverse[\s\-]?charge|btw\s+verlegd|\bverlegd\b", re.IGNORECASE)
_COC_RE = re.compile(
    r"\b(?:kvk|chamber\s+of\s+commerce|coc)(?:[\s\-]*(?:number|nummer|no\.?|nr\.?))?\s*[:#.]?\s*(?P<num>\d{8})\b",
    re.IGNORECASE,
)

_DESCRIPTION_HEADER_RE = re.compile(r"^(?:description|omschrijving)\b", re.IGNORECASE)
_DESCRIPTION_STOP_RE = re.compile(
    r"\b(?:qty|quantity|unit\s+price|subtotal|total|vat|btw|amount\s+due|bill\s+to)\b",
    re.IGNORECASE,
)
_TABLE_ROW_RE = re.compile(
    r"^(?P<desc>.+?)\s+\d+(?:[.,]\d+)?\s+[€$£]?\s?\d[\d.,]*\s+[€$£]?\s?\d[\d.,]*$"
)
_TRAILING_AMOUNT_RE = re.compile(r"^(?P<desc>.*?[A-Za-z].*?)\s+[€$£]?\s?\d[\d.,]*[.,]\d{2}$")

PAYMENT_METHOD_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Credit Card", ("credit card", "visa", "mastercard", "amex", "american express")),
    ("Debit Card", ("debit card", "maestro")),
    ("PayPal", ("paypal",)),
    ("Stripe", ("stripe",)),
    ("Bank Transfer", ("bank transfer", "wire transfer", "sepa", "iban", "overschrijving")),
    ("Cash", ("cash",)),
)

CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Subscriptions", ("subscription", "monthly plan", "annual plan", "license", "licence", "saas")),
    ("Office", ("office supplies", "stationery", "printer", "toner", "furniture")),
    ("Marketing", ("advertising", "ads", "campaign", "marketing", "sponsored")),
    ("Donations", ("donation", "charity", "gift aid")),
)


@dataclass
class _ExtractionState:
    source: NormalizedText
    rules: ExtractionRules
    fields: dict[str, Any] = field(default_factory=dict)

    def offer(self, name: str, value: Any) -> bool:
        if value is None or value == "" or name in self.fields:
            return False
        self.fields[name] = value
        return True


Stage = Callable[[_ExtractionState], dict[str, Any]]
Strategy = Callable[[NormalizedText], "str | None"]


def _first_success(strategies: tuple[Strategy, ...], source: NormalizedText) -> str | None:
    for strategy in strategies:
        value = strategy(source)
        if value:
            return value
    return None


def _words(text: str) -> list[str]:
    return text.split()


# -- document type -----------------------------------------------------------


def _detect_document_type(state: _ExtractionState) -> dict[str, Any]:
    lowered = state.source.lowered
    for keyword, document_type in _DOCUMENT_TYPE_KEYWORDS:
        if keyword in lowered:
            proposed: dict[str, Any] = {"document_type": document_type}
            if document_type == "receipt":
                proposed["payment_status"] = "paid"
            return proposed
    return {}


# -- invoice number ----------------------------------------------------------


def normalize_invoice_token(value: str) -> str | None:
    token = re.sub(r"[^A-Z0-9\-_/]", "", value.upper()).strip("-_/")
    if not token or not re.search(r"\d", token):
        return None
    return token


def _label_remainders(source: NormalizedText) -> list[str]:
    remainders: list[str] = []
    lines = source.collapsed_lines
    for idx, line in enumerate(lines):
        m = _INVOICE_LABEL_LINE_RE.match(line)
        if not m:
            continue
        rest = m.group("rest").strip()
        if not rest and idx + 1 < len(lines):
            rest = lines[idx + 1].strip()
        if rest:
            remainders.append(rest)
    return remainders


def _invoice_number_from_pattern(source: NormalizedText) -> str | None:
    for m in INVOICE_NUMBER_RE.finditer(source.joined):
        token = normalize_invoice_token(m.group("token"))
        if token:
            return token
    return None


def _invoice_number_from_label_line(source: NormalizedText) -> str | None:
    for rest in _label_remainders(source):
        if _SINGLE_TOKEN_RE.match(rest):
            token = normalize_invoice_token(rest)
            if token:
                return token
    return None


def _invoice_number_from_token_pair(source: NormalizedText) -> str | None:
    for rest in _label_remainders(source):
        m = _TOKEN_PAIR_RE.match(rest)
        if m and re.search(r"\d", m.group("b")):
            return normalize_invoice_token(f"{m.group('a')}-{m.group('b')}")
    return None


def _invoice_number_from_first_token(source: NormalizedText) -> str | None:
    for rest in _label_remainders(source):
        for word in _words(rest):
            token = normalize_invoice_token(word)
            if token:
                return token
    return None


INVOICE_NUMBER_STRATEGIES: tuple[Strategy, ...] = (
    _invoice_number_from_pattern,
    _invoice_number_from_label_line,
    _invoice_number_from_token_pair,
    _invoice_number_from_first_token,
)


def _detect_invoice_number(state: _ExtractionState) -> dict[str, Any]:
    token = _first_success(INVOICE_NUMBER_STRATEGIES, state.source)
    return {"invoice_number": token} if token else {}


# -- dates -------------------------------------------------------------------


def _labelled_date(lines: tuple[str, ...], labels: tuple[str, ...]) -> ParsedDate | None:
    for idx, line in enumerate(lines):
        lowered = line.lower()
        if not any(label in lowered for label in labels):
            continue
        found = first_date_in(line)
        if found is None and idx + 1 < len(lines):
            found = first_date_in(lines[idx + 1])
        if found is not None:
            return found
    return None


def _detect_dates(state: _ExtractionState) -> dict[str, Any]:
    text = state.source.joined
    ordered = sorted(find_short_dates(text) + find_long_dates(text), key=lambda d: d.position)
    proposed: dict[str, Any] = {}
    if ordered:
        primary = ordered[0]
        proposed["date"] = primary.iso
        proposed["invoice_date"] = primary.iso
        if primary.ambiguous:
            proposed["date_ambiguous"] = True
        if len(ordered) > 1:
            proposed["due_date"] = ordered[1].iso

    issued = _labelled_date(state.source.collapsed_lines, ("date of issue", "invoice date", "issue date"))
    if issued is not None:
        proposed["date"] = issued.iso
        proposed["invoice_date"] = issued.iso
        if issued.ambiguous:
            proposed["date_ambiguous"] = True
        else:
            proposed.pop("date_ambiguous", None)
    due = _labelled_date(state.source.collapsed_lines, ("date due", "due date"))
    if due is not None:
        proposed["due_date"] = due.iso
    return proposed


# -- amount & currency ---------------------------------------------------------


def _detect_amount(state: _ExtractionState) -> dict[str, Any]:
    best = detect_amount(state.source, state.rules)
    if best is None:
        return {}
    proposed: dict[str, Any] = {"amount": best.formatted}
    if best.source in PAID_SOURCES:
        proposed["payment_status"] = "paid"
    return proposed


def _detect_currency(state: _ExtractionState) -> dict[str, Any]:
    text = state.source.text
    lowered = state.source.lowered
    for code, symbols, words in CURRENCY_MARKERS:
        if any(symbol in text for symbol in symbols):
            return {"currency": code}
        if any(re.search(rf"(?<![a-z]){re.escape(word)}(?![a-z])", lowered) for word in words):
            return {"currency": code}
    return {}


# -- vendor & address ----------------------------------------------------------


def _is_field_line(line: str) -> bool:
    return bool(_FIELD_LINE_RE.search(line) or INVOICE_NUMBER_RE.search(line) or contains_date(line))


def _is_vendor_candidate(line: str) -> bool:
    if _is_field_line(line) or _CONTACT_RE.search(line):
        return False
    return len(re.findall(r"[A-Za-z]", line)) >= 2


def _vendor_block(lines: tuple[str, ...]) -> list[int]:
    anchor = next((idx for idx, line in enumerate(lines) if _BILL_TO_RE.search(line)), None)
    if anchor is None:
        return []
    block: list[int] = []
    for idx in range(anchor - 1, -1, -1):
        line = lines[idx]
        if _BLOCK_BOUNDARY_RE.search(line):
            break
        if not _is_vendor_candidate(line):
            continue
        block.append(idx)
    block.reverse()
    return block


def _choose_vendor_line(lines: tuple[str, ...], block: list[int]) -> int | None:
    if not block:
        return None
    for idx in block:
        if LEGAL_SUFFIX_RE.search(lines[idx]):
            return idx
    for idx in block:
        if len(_words(lines[idx])) <= 5 and not _LONG_DIGITS_RE.search(lines[idx]):
            return idx
    return block[0]


def _vendor_line_anywhere(lines: tuple[str, ...]) -> int | None:
    for idx, line in enumerate(lines):
        if LEGAL_SUFFIX_RE.search(line) and _is_vendor_candidate(line) and not _ADDRESS_NOISE_RE.search(line):
            return idx
    return None


def _address_after(lines: tuple[str, ...], vendor_idx: int) -> str | None:
    parts: list[str] = []
    for line in lines[vendor_idx + 1 : vendor_idx + 4]:
        if _ADDRESS_NOISE_RE.search(line) or _BILL_TO_RE.search(line) or len(_words(line)) >= 12:
            break
        if _FIELD_LINE_RE.search(line) or contains_date(line):
            break
        parts.append(line)
    if not parts:
        return None
    return ", ".join(parts)


def _detect_vendor(state: _ExtractionState) -> dict[str, Any]:
    lines = state.source.collapsed_lines
    vendor_idx = _choose_vendor_line(lines, _vendor_block(lines))
    if vendor_idx is None:
        vendor_idx = _vendor_line_anywhere(lines)
    if vendor_idx is None:
        return {}
    proposed: dict[str, Any] = {"vendor": collapse_whitespace(lines[vendor_idx])}
    address = _address_after(lines, vendor_idx)
    if address:
        proposed["vendor_address"] = address
    return proposed


# -- country, VAT, registration -------------------------------------------------


def _detect_country(state: _ExtractionState) -> dict[str, Any]:
    if "vendor_country" in state.fields:
        return {}
    code = detect_country(state.fields.get("vendor"), state.fields.get("vendor_address"))
    return {"vendor_country": code} if code else {}


def normalize_vat_number(raw: str, country_hint: str | None = None) -> str | None:
    value = re.sub(r"[\s.\-]", "", raw).upper()
    if not re.fullmatch(r"[A-Z0-9]+", value):
        return None
    if country_hint and not value[:2].isalpha():
        value = country_hint.upper() + value
    if len(re.sub(r"^[A-Z]{2}", "", value)) < 8 or not re.search(r"\d", value):
        return None
    return value


def _vat_country(vat_number: str) -> str | None:
    prefix = vat_number[:2]
    if not prefix.isalpha():
        return None
    code = normalize_country_code(prefix)
    return code if code in ISO_COUNTRY_CODES else None


def _detect_vat(state: _ExtractionState) -> dict[str, Any]:
    text = state.source.joined
    proposed: dict[str, Any] = {}
    vat_number: str | None = None
    for m in _VAT_PREFIXED_RE.finditer(text):
        vat_number = normalize_vat_number(m.group("num"), country_hint=m.group("cc"))
        if vat_number:
            break
    if vat_number is None:
        for m in _VAT_LABELLED_RE.finditer(text):
            raw = m.group("num")
            if re.search(r"[.,]\d{2}$", raw):
                continue
            vat_number = normalize_vat_number(raw)
            if vat_number:
                break
    if vat_number:
        proposed["vat_number"] = vat_number
        country = _vat_country(vat_number)
        if country:
            proposed["vendor_country"] = country

    for pattern in _VAT_RATE_RES:
        m = pattern.search(text)
        if m:
            proposed["btw"] = int(m.group("rate"))
            break
    if _REVERSE_CHARGE_RE.search(text):
        proposed["reverse_charge"] = True
    return proposed


def _detect_chamber_of_commerce(state: _ExtractionState) -> dict[str, Any]:
    m = _COC_RE.search(state.source.joined)
    return {"chamber_of_commerce_number": m.group("num")} if m else {}


# -- description -----------------------------------------------------------------


def _description_column(line: str) -> str:
    for pattern in (_TABLE_ROW_RE, _TRAILING_AMOUNT_RE):
        m = pattern.match(line)
        if m:
            return m.group("desc").strip()
    return line


def _description_from_header(source: NormalizedText) -> str | None:
    lines = source.collapsed_lines
    for idx, line in enumerate(lines):
        if not _DESCRIPTION_HEADER_RE.match(line):
            continue
        collected: list[str] = []
        for follow in lines[idx + 1 :]:
            if _DESCRIPTION_STOP_RE.search(follow) or len(collected) >= 2:
                break
            collected.append(_description_column(follow))
        if collected:
            return " ".join(collected)
    return None


def _description_between_keywords(source: NormalizedText) -> str | None:
    text = source.joined
    lowered = text.lower()
    start = lowered.find("description")
    if start < 0:
        return None
    end = lowered.find("subtotal", start)
    if end < 0:
        return None
    segment = text[start + len("description") : end]
    lines = [line.strip(" :-\t") for line in segment.split("\n")]
    picked = [line for line in lines if line][:2]
    return " ".join(picked) if picked else None


DESCRIPTION_STRATEGIES: tuple[Strategy, ...] = (
    _description_from_header,
    _description_between_keywords,
)


def _detect_description(state: _ExtractionState) -> dict[str, Any]:
    description = _first_success(DESCRIPTION_STRATEGIES, state.source)
    if not description and state.fields.get("vendor"):
        description = f"Invoice from {state.fields['vendor']}"
    return {"description": collapse_whitespace(description)} if description else {}


# -- payment method & category -----------------------------------------------------


def _keyword_table_hit(lowered: str, table: tuple[tuple[str, tuple[str, ...]], ...]) -> str | None:
    for label, keywords in table:
        for keyword in keywords:
            if re.search(rf"(?<![\w]){re.escape(keyword)}(?![\w])", lowered):
                return label
    return None


def _detect_payment_details(state: _ExtractionState) -> dict[str, Any]:
    lowered = state.source.lowered
    proposed: dict[str, Any] = {}
    method = _keyword_table_hit(lowered, PAYMENT_METHOD_KEYWORDS)
    if method:
        proposed["payment_method"] = method
    category = _keyword_table_hit(lowered, CATEGORY_KEYWORDS)
    if category:
        proposed["category"] = category
    return proposed


STAGES: tuple[tuple[str, Stage], ...] = (
    ("document_type", _detect_document_type),
    ("invoice_number", _detect_invoice_number),
    ("dates", _detect_dates),
    ("amount", _detect_amount),
    ("currency", _detect_currency),
    ("vendor", _detect_vendor),
    ("country", _detect_country),
    ("vat", _detect_vat),
    ("chamber_of_commerce", _detect_chamber_of_commerce),
    ("description", _detect_description),
    ("payment", _detect_payment_details),
)


def _post_process(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    if cleaned.get("vendor"):
        cleaned["vendor"] = collapse_whitespace(cleaned["vendor"])
    if cleaned.get("vendor_address"):
        address = dedupe_comma_segments(cleaned["vendor_address"])
        if address:
            cleaned["vendor_address"] = address
        else:
            cleaned.pop("vendor_address")
    if cleaned:
        cleaned.setdefault("payment_status", "open")
    return cleaned


def _build_fields(fields: dict[str, Any]) -> ExtractedFields:
    pending = dict(fields)
    while True:
        try:
            return ExtractedFields(**pending)
        except ValidationError as exc:
            rejected = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
            dropped = [key for key in pending if key in rejected or to_camel(key) in rejected]
            if not dropped:
                logger.warning("Discarding all extracted fields after validation failure: %s", exc)
                return ExtractedFields()
            logger.warning("Dropping extracted fields that failed validation: %s", sorted(dropped))
            for key in dropped:
                pending.pop(key)


def extract(text: str | None, *, rules: ExtractionRules | None = None) -> ExtractedFields:
    """Infer expense fields from raw OCR or PDF text.

    Stages run in a fixed order and never overwrite a field an earlier stage set.
    The function is total: a stage that fails is logged and skipped, and text with
    no recognisable signal yields an empty result.
    """
    state = _ExtractionState(source=normalize_text(text), rules=rules or DEFAULT_RULES)
    if not state.source.lines:
        return ExtractedFields()

    for name, stage in STAGES:
        try:
            proposed = stage(state)
        except Exception:  # noqa: BLE001
            logger.exception("Extraction stage failed; skipping", extra={"stage": name, "outcome": "error"})
            continue
        accepted = [key for key, value in proposed.items() if state.offer(key, value)]
        if accepted:
            logger.debug("Stage %s set %s", name, accepted, extra={"stage": name, "outcome": "success"})

    return _build_fields(_post_process(state.fields))
