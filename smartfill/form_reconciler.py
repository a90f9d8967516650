from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from schemas.expense_schema import ExpenseForm, ExtractedFields, VendorProfile
from smartfill.rules import ExtractionRules
from smartfill.text_utils import contains_word
from smartfill.vendor_index import VendorDirectory
from smartfill.vendor_matching import VendorMatch, match_vendor

logger = logging.getLogger(__name__)

NOISY_VENDOR_KEYWORDS = (
    "invoice",
    "receipt",
    "subtotal",
    "total",
    "amount paid",
    "payment method",
    "page",
    "bill to",
)
ADDRESS_ASSIST_KEYWORDS = ("bill to", "ship to", "customer", "subtotal", "email", "e-mail")

DATE_FIELDS = frozenset({"date", "invoice_date", "due_date"})
NUMERIC_FIELDS = frozenset({"amount", "btw"})

# Extracted fields that have a counterpart on the expense form, in merge order.
RECONCILED_FIELDS: tuple[str, ...] = (
    "document_type",
    "invoice_number",
    "date",
    "invoice_date",
    "due_date",
    "vendor",
    "vendor_address",
    "vendor_country",
    "vat_number",
    "chamber_of_commerce_number",
    "amount",
    "currency",
    "btw",
    "reverse_charge",
    "description",
    "category",
    "payment_method",
    "payment_status",
)


@dataclass(frozen=True)
class ReconcileResult:
    form: ExpenseForm
    matched_vendor: VendorProfile | None = None
    match_score: int | None = None
    applied_fields: tuple[str, ...] = ()


def vendor_text_looks_noisy(value: str | None) -> bool:
    if not value:
        return False
    if len(value) > 80 or value.count(",") >= 5:
        return True
    return any(contains_word(value, keyword) for keyword in NOISY_VENDOR_KEYWORDS)


def vendor_address_needs_assistance(value: str | None) -> bool:
    text = (value or "").strip()
    if len(text) < 10 or text.count(",") >= 6 or "@" in text:
        return True
    return any(contains_word(text, keyword) for keyword in ADDRESS_ASSIST_KEYWORDS)


def _is_zero_or_blank(value: Any) -> bool:
    if value is None or value == "" or value == 0:
        return True
    text = str(value).strip().replace(",", ".")
    if not text:
        return True
    try:
        return Decimal(text) == 0
    except InvalidOperation:
        return False


def is_unset(field_name: str, value: Any, *, today: date, home_country: str | None = None) -> bool:
    """Whether a form value may be replaced by an extracted one.

    Blank values are always unset. Dates equal to today and a country equal to
    the tenant's home country are form defaults, and so are zero amounts and rates.
    """
    if value is None:
        return True
    if field_name in NUMERIC_FIELDS:
        return _is_zero_or_blank(value)
    if isinstance(value, bool):
        return value is False
    text = str(value).strip()
    if not text:
        return True
    if field_name in DATE_FIELDS:
        return text == today.isoformat()
    if field_name == "vendor_country" and home_country:
        return text.upper() == home_country.strip().upper()
    return False


def _first(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


def enrich_with_profile(extracted: ExtractedFields, match: VendorMatch) -> ExtractedFields:
    """Fill empty or noisy extracted fields from a matched vendor profile."""
    profile = match.profile
    updates: dict[str, Any] = {}

    if not extracted.vendor or vendor_text_looks_noisy(extracted.vendor) or match.reason == "invoice_number":
        updates["vendor"] = profile.name.strip()

    address = _first(profile.primary_address, *profile.addresses)
    if address and vendor_address_needs_assistance(extracted.vendor_address):
        updates["vendor_address"] = address

    country = _first(profile.country, *profile.countries)
    if country and not extracted.vendor_country:
        updates["vendor_country"] = country.upper()

    currency = _first(profile.preferred_currency, *profile.currencies)
    if currency and not extracted.currency:
        updates["currency"] = currency.upper()

    vat_number = re.sub(r"[^A-Z0-9]", "", (profile.primary_vat_number or "").upper())
    if vat_number and not extracted.vat_number:
        updates["vat_number"] = vat_number

    coc_number = re.sub(r"[^A-Z0-9]", "", (profile.primary_chamber_of_commerce_number or "").upper())
    if coc_number and not extracted.chamber_of_commerce_number:
        updates["chamber_of_commerce_number"] = coc_number

    if profile.default_payment_method and not extracted.payment_method:
        updates["payment_method"] = profile.default_payment_method

    return extracted.model_copy(update=updates)


def reconcile(
    current_form: ExpenseForm | Mapping[str, Any],
    extracted: ExtractedFields,
    vendor_directory: VendorDirectory | None = None,
    *,
    today: date | None = None,
    home_country: str | None = None,
    rules: ExtractionRules | None = None,
) -> ReconcileResult:
    form = current_form if isinstance(current_form, ExpenseForm) else ExpenseForm.model_validate(dict(current_form))
    reference_day = today or date.today()

    match: VendorMatch | None = None
    if vendor_directory is not None and len(vendor_directory):
        match = match_vendor(extracted, vendor_directory.index, vendor_directory.profiles, rules=rules)
    if match is not None:
        extracted = enrich_with_profile(extracted, match)
        logger.info(
            "Matched saved vendor %s",
            match.profile.name,
            extra={"vendor_id": match.profile.id, "match_score": match.score, "outcome": match.reason},
        )

    updates: dict[str, Any] = {}
    for name in RECONCILED_FIELDS:
        value = getattr(extracted, name)
        if value is None:
            continue
        if is_unset(name, getattr(form, name), today=reference_day, home_country=home_country):
            updates[name] = value

    if match is not None and not form.vendor_id.strip():
        merged_vendor = updates.get("vendor", form.vendor)
        if merged_vendor.strip().lower() == match.profile.name.strip().lower():
            updates["vendor_id"] = match.profile.id

    return ReconcileResult(
        form=form.model_copy(update=updates),
        matched_vendor=match.profile if match else None,
        match_score=match.score if match else None,
        applied_fields=tuple(k for k in updates if k != "vendor_id"),
    )
