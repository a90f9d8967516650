from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable
from uuid import uuid4

from schemas.expense_schema import ExpenseForm, VendorProfile
from smartfill.vendor_index import name_tokens, normalize_invoice_number, normalize_vendor_name


@dataclass(frozen=True)
class VendorProfileUpdate:
    """Changes the caller should persist after a user confirms an expense."""

    profile_id: str
    usage_count: int
    invoice_numbers: tuple[str, ...]
    last_invoice_number: str | None
    name_history: tuple[str, ...]
    countries: tuple[str, ...]
    currencies: tuple[str, ...]
    addresses: tuple[str, ...]

    def as_patch(self) -> dict[str, Any]:
        return {
            "usageCount": self.usage_count,
            "invoiceNumbers": list(self.invoice_numbers),
            "lastInvoiceNumber": self.last_invoice_number,
            "nameHistory": list(self.name_history),
            "countries": list(self.countries),
            "currencies": list(self.currencies),
            "addresses": list(self.addresses),
        }


def _append_unique(
    values: tuple[str, ...], candidate: str, *, key: Callable[[str], str] = str.lower
) -> tuple[str, ...]:
    clean = candidate.strip()
    if not clean or any(key(v) == key(clean) for v in values):
        return values
    return values + (clean,)


def recommend_profile_update(profile: VendorProfile, confirmed_form: ExpenseForm) -> VendorProfileUpdate:
    invoice_numbers = profile.invoice_numbers
    last_invoice = profile.last_invoice_number
    if confirmed_form.invoice_number.strip():
        invoice_numbers = _append_unique(invoice_numbers, confirmed_form.invoice_number, key=normalize_invoice_number)
        last_invoice = confirmed_form.invoice_number.strip()

    name_history = profile.name_history
    if confirmed_form.vendor.strip() and confirmed_form.vendor.strip().lower() != profile.name.strip().lower():
        name_history = _append_unique(name_history, confirmed_form.vendor)

    return VendorProfileUpdate(
        profile_id=profile.id,
        usage_count=profile.usage_count + 1,
        invoice_numbers=invoice_numbers,
        last_invoice_number=last_invoice,
        name_history=name_history,
        countries=_append_unique(profile.countries, confirmed_form.vendor_country.upper()),
        currencies=_append_unique(profile.currencies, confirmed_form.currency.upper()),
        addresses=_append_unique(profile.addresses, confirmed_form.vendor_address),
    )


def propose_vendor_profile(confirmed_form: ExpenseForm, *, profile_id: str | None = None) -> VendorProfile | None:
    name = confirmed_form.vendor.strip()
    if not name:
        return None
    invoice_number = confirmed_form.invoice_number.strip() or None
    country = confirmed_form.vendor_country.strip().upper() or None
    currency = confirmed_form.currency.strip().upper() or None
    address = confirmed_form.vendor_address.strip() or None
    return VendorProfile(
        id=profile_id or uuid4().hex,
        name=name,
        normalized_name=normalize_vendor_name(name),
        search_tokens=name_tokens(name),
        invoice_numbers=(invoice_number,) if invoice_number else (),
        last_invoice_number=invoice_number,
        country=country,
        countries=(country,) if country else (),
        preferred_currency=currency,
        currencies=(currency,) if currency else (),
        primary_address=address,
        addresses=(address,) if address else (),
        primary_vat_number=confirmed_form.vat_number.strip() or None,
        primary_chamber_of_commerce_number=confirmed_form.chamber_of_commerce_number.strip() or None,
        default_payment_method=confirmed_form.payment_method.strip() or None,
        usage_count=1,
    )
