from __future__ import annotations

from decimal import Decimal

import pytest

from smartfill.amounts import detect_amount, format_amount, parse_amount
from smartfill.rules import ExtractionRules
from smartfill.text_utils import normalize_text


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("12,50", Decimal("12.50")),
        ("1,234", Decimal("1234")),
        ("1.234.567", Decimal("1234567")),
        ("1'250.00", Decimal("1250.00")),
        ("1 234,56", Decimal("1234.56")),
        ("12 500.00", Decimal("12500.00")),
        ("99", Decimal("99")),
        ("-5.00", Decimal("5.00")),
    ],
)
def test_parse_amount_resolves_separators(token: str, expected: Decimal) -> None:
    assert parse_amount(token) == expected


def test_parse_amount_rejects_garbage() -> None:
    assert parse_amount("") is None
    assert parse_amount("abc") is None


def test_format_amount_rounds_half_up() -> None:
    assert format_amount(Decimal("2.005")) == "2.01"
    assert format_amount(Decimal("10")) == "10.00"


def test_detect_amount_prefers_total_over_subtotal_and_vat() -> None:
    best = detect_amount(normalize_text("Subtotal 100.00\nVAT 21% 21.00\nTotal 121.00"))
    assert best is not None
    assert best.formatted == "121.00"
    assert best.source == "total"


def test_detect_amount_equal_scores_take_later_position() -> None:
    best = detect_amount(normalize_text("Total 10.00\nTotal 20.00"))
    assert best is not None
    assert best.formatted == "20.00"


def test_detect_amount_paid_label_outranks_total() -> None:
    best = detect_amount(normalize_text("Total 80.00\nAmount paid 30.00"))
    assert best is not None
    assert best.formatted == "30.00"
    assert best.source == "amount_paid"


def test_detect_amount_falls_back_to_first_decimal_number() -> None:
    best = detect_amount(normalize_text("Something 12.34 and 56.78"))
    assert best is not None
    assert best.formatted == "12.34"
    assert best.source == "fallback"


def test_detect_amount_ignores_percentages() -> None:
    assert detect_amount(normalize_text("VAT 21%")) is None


def test_detect_amount_uses_rule_overrides() -> None:
    source = normalize_text("Total 10.00\nBalance due 7.50")
    assert detect_amount(source).formatted == "10.00"

    rules = ExtractionRules.from_dict({"amount_label_scores": {"balance_due": 20}})
    assert detect_amount(source, rules).formatted == "7.50"
