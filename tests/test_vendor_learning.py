from __future__ import annotations

from schemas.expense_schema import ExpenseForm, VendorProfile
from smartfill.vendor_learning import propose_vendor_profile, recommend_profile_update


def _profile() -> VendorProfile:
    return VendorProfile(
        id="v1",
        name="Acme Corporation Ltd",
        invoice_numbers=("XYZ-1",),
        last_invoice_number="XYZ-1",
        currencies=("EUR",),
        countries=("NL",),
        usage_count=3,
    )


def test_recommend_update_appends_new_invoice_number() -> None:
    profile = _profile()
    form = ExpenseForm(vendor="ACME Corp", invoice_number="INV-9", currency="usd", vendor_country="nl")

    update = recommend_profile_update(profile, form)
    assert update.profile_id == "v1"
    assert update.usage_count == 4
    assert update.invoice_numbers == ("XYZ-1", "INV-9")
    assert update.last_invoice_number == "INV-9"
    assert update.name_history == ("ACME Corp",)
    assert update.currencies == ("EUR", "USD")
    assert update.countries == ("NL",)
    assert profile.usage_count == 3
    assert profile.invoice_numbers == ("XYZ-1",)


def test_recommend_update_dedupes_invoice_numbers_by_normalized_form() -> None:
    update = recommend_profile_update(_profile(), ExpenseForm(vendor="Acme Corporation Ltd", invoice_number="xyz 1"))
    assert update.invoice_numbers == ("XYZ-1",)
    assert update.last_invoice_number == "xyz 1"
    assert update.name_history == ()


def test_update_patch_uses_profile_field_names() -> None:
    patch = recommend_profile_update(_profile(), ExpenseForm(vendor_address="Keizersgracht 12, Amsterdam")).as_patch()
    assert patch["usageCount"] == 4
    assert patch["addresses"] == ["Keizersgracht 12, Amsterdam"]
    assert patch["lastInvoiceNumber"] == "XYZ-1"


def test_propose_vendor_profile_from_confirmed_form() -> None:
    form = ExpenseForm(
        vendor="Jansen Advies B.V.",
        invoice_number="F-1",
        currency="eur",
        vendor_country="nl",
        payment_method="Bank Transfer",
    )
    profile = propose_vendor_profile(form, profile_id="new-1")

    assert profile is not None
    assert profile.id == "new-1"
    assert profile.normalized_name == "jansen advies"
    assert profile.search_tokens == ("jansen", "advies")
    assert profile.invoice_numbers == ("F-1",)
    assert profile.preferred_currency == "EUR"
    assert profile.country == "NL"
    assert profile.default_payment_method == "Bank Transfer"
    assert profile.usage_count == 1


def test_propose_vendor_profile_requires_vendor_name() -> None:
    assert propose_vendor_profile(ExpenseForm(vendor="  ")) is None
    generated = propose_vendor_profile(ExpenseForm(vendor="Globex"))
    assert generated is not None
    assert len(generated.id) == 32
