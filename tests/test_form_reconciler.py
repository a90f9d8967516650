from __future__ import annotations

from datetime import date

import pytest

from schemas.expense_schema import ExpenseForm, ExtractedFields, VendorProfile
from smartfill.form_reconciler import (
    enrich_with_profile,
    is_unset,
    reconcile,
    vendor_address_needs_assistance,
    vendor_text_looks_noisy,
)
from smartfill.vendor_index import VendorDirectory
from smartfill.vendor_matching import VendorMatch

TODAY = date(2024, 3, 1)


@pytest.fixture
def directory() -> VendorDirectory:
    return VendorDirectory.from_profiles(
        [
            {
                "id": "v1",
                "name": "Acme Corporation Ltd",
                "invoiceNumbers": ["XYZ-1"],
                "country": "NL",
                "preferredCurrency": "EUR",
                "primaryAddress": "Keizersgracht 12, Amsterdam",
            },
            {"id": "v2", "name": "Globex BV"},
        ]
    )


def test_reconcile_keeps_values_the_user_entered() -> None:
    current = {"vendor": "My Own Entry", "amount": "500.00"}
    result = reconcile(current, ExtractedFields(vendor="Other Vendor", amount="10.00"), today=TODAY)

    assert result.form.vendor == "My Own Entry"
    assert result.form.amount == "500.00"
    assert "vendor" not in result.applied_fields
    assert "amount" not in result.applied_fields
    assert current == {"vendor": "My Own Entry", "amount": "500.00"}


def test_reconcile_fills_empty_form() -> None:
    extracted = ExtractedFields(
        invoice_number="INV-7",
        invoice_date="2024-02-15",
        amount="121.00",
        currency="EUR",
        btw=21,
        reverse_charge=True,
    )
    result = reconcile(ExpenseForm(), extracted, today=TODAY)

    assert result.form.invoice_number == "INV-7"
    assert result.form.invoice_date == "2024-02-15"
    assert result.form.amount == "121.00"
    assert result.form.btw == 21
    assert result.form.reverse_charge is True
    assert result.matched_vendor is None
    assert result.match_score is None
    assert set(result.applied_fields) == {
        "invoice_number",
        "invoice_date",
        "amount",
        "currency",
        "btw",
        "reverse_charge",
    }


def test_reconcile_matches_vendor_by_invoice_number(directory: VendorDirectory) -> None:
    extracted = ExtractedFields(invoice_number="XYZ-1", vendor="Acme Corp")
    result = reconcile({"vendor": ""}, extracted, directory, today=TODAY)

    assert result.matched_vendor is not None
    assert result.matched_vendor.id == "v1"
    assert result.form.vendor == "Acme Corporation Ltd"
    assert result.form.vendor_id == "v1"
    assert result.form.vendor_country == "NL"
    assert result.form.currency == "EUR"
    assert result.form.vendor_address == "Keizersgracht 12, Amsterdam"
    assert result.match_score is not None


def test_reconcile_does_not_link_vendor_id_when_user_typed_other_name(directory: VendorDirectory) -> None:
    extracted = ExtractedFields(invoice_number="XYZ-1")
    result = reconcile({"vendor": "Someone Else"}, extracted, directory, today=TODAY)
    assert result.matched_vendor is not None
    assert result.form.vendor == "Someone Else"
    assert result.form.vendor_id == ""


def test_reconcile_treats_today_and_home_country_as_defaults() -> None:
    current = {"date": "2024-03-01", "invoiceDate": "2024-01-10", "vendorCountry": "NL"}
    extracted = ExtractedFields(date="2024-02-15", invoice_date="2024-02-15", vendor_country="DE")

    result = reconcile(current, extracted, today=TODAY, home_country="NL")
    assert result.form.date == "2024-02-15"
    assert result.form.invoice_date == "2024-01-10"
    assert result.form.vendor_country == "DE"

    without_home = reconcile(current, extracted, today=TODAY)
    assert without_home.form.vendor_country == "NL"


def test_reconcile_preserves_unknown_form_keys() -> None:
    result = reconcile({"vendor": "", "attachmentId": "file-9"}, ExtractedFields(vendor="Acme Ltd"), today=TODAY)
    dumped = result.form.model_dump(by_alias=True)
    assert dumped["attachmentId"] == "file-9"
    assert dumped["vendor"] == "Acme Ltd"


@pytest.mark.parametrize(
    ("field_name", "value", "expected"),
    [
        ("amount", "", True),
        ("amount", "0.00", True),
        ("amount", 0, True),
        ("amount", "0,00", True),
        ("amount", "12.50", False),
        ("btw", None, True),
        ("btw", 0, True),
        ("btw", 21, False),
        ("reverse_charge", False, True),
        ("reverse_charge", True, False),
        ("vendor", "  ", True),
        ("vendor", "Acme", False),
        ("due_date", "2024-03-01", True),
        ("due_date", "2024-04-01", False),
        ("vendor_country", "nl", True),
        ("vendor_country", "BE", False),
    ],
)
def test_is_unset(field_name: str, value: object, expected: bool) -> None:
    assert is_unset(field_name, value, today=TODAY, home_country="NL") is expected


def test_vendor_text_looks_noisy() -> None:
    assert vendor_text_looks_noisy("Invoice Total Acme") is True
    assert vendor_text_looks_noisy("A, B, C, D, E, F") is True
    assert vendor_text_looks_noisy("Acme Ltd") is False
    assert vendor_text_looks_noisy(None) is False


def test_vendor_address_needs_assistance() -> None:
    assert vendor_address_needs_assistance(None) is True
    assert vendor_address_needs_assistance("Street 1") is True
    assert vendor_address_needs_assistance("Bill To: Someone, Street 1") is True
    assert vendor_address_needs_assistance("Keizersgracht 12, Amsterdam") is False


def test_enrich_with_profile_replaces_noisy_vendor_only() -> None:
    profile = VendorProfile(id="v1", name="Acme Ltd", default_payment_method="Bank Transfer", country="NL")
    match = VendorMatch(profile=profile, score=90, reason="scored")

    noisy = enrich_with_profile(ExtractedFields(vendor="Invoice page 1 Acme", vendor_country="BE"), match)
    assert noisy.vendor == "Acme Ltd"
    assert noisy.vendor_country == "BE"
    assert noisy.payment_method == "Bank Transfer"

    clean = enrich_with_profile(ExtractedFields(vendor="Acme Limited"), match)
    assert clean.vendor == "Acme Limited"
    assert clean.vendor_country == "NL"
