from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_AMOUNT_LABEL_SCORES: dict[str, int] = {
    "amount_paid": 12,
    "paid_on": 10,
    "amount_due": 9,
    "total": 8,
    "balance_due": 7,
}

DEFAULT_AMOUNT_CONTEXT_SCORES: dict[str, int] = {
    "amount paid": 6,
    "amount due": 5,
    "grand total": 5,
    "total": 4,
    "totaal": 4,
    "balance due": 4,
    "payment": 2,
    "subtotal": 1,
    "vat": -2,
    "tax": -2,
    "btw": -2,
}

DEFAULT_VENDOR_MATCH_WEIGHTS: dict[str, int] = {
    "base_exact_name": 60,
    "base_token": 20,
    "base_invoice_number": 40,
    "base_single_profile": 30,
    "exact_name": 70,
    "name_containment": 45,
    "per_shared_token": 12,
    "shared_token_bonus": 20,
    "invoice_number": 80,
    "country": 12,
    "preferred_currency": 10,
    "secondary_currency": 6,
    "address_tokens": 10,
    "usage_cap": 10,
}


class RulesError(ValueError):
    def __init__(self, message: str, code: str = "invalid_rules") -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class ExtractionRules:
    """Tunable scoring tables for amount selection and vendor matching."""

    amount_label_scores: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_AMOUNT_LABEL_SCORES))
    amount_context_scores: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_AMOUNT_CONTEXT_SCORES))
    vendor_match_weights: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_VENDOR_MATCH_WEIGHTS))
    vendor_match_threshold: int = 60
    vendor_match_threshold_with_invoice: int = 50

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ExtractionRules":
        if not isinstance(payload, dict):
            raise RulesError("Rules payload must be a JSON object", code="invalid_shape")
        return cls(
            amount_label_scores=_merge_scores(
                DEFAULT_AMOUNT_LABEL_SCORES, payload.get("amount_label_scores"), "amount_label_scores"
            ),
            amount_context_scores=_merge_scores(
                DEFAULT_AMOUNT_CONTEXT_SCORES, payload.get("amount_context_scores"), "amount_context_scores"
            ),
            vendor_match_weights=_merge_scores(
                DEFAULT_VENDOR_MATCH_WEIGHTS, payload.get("vendor_match_weights"), "vendor_match_weights"
            ),
            vendor_match_threshold=int(payload.get("vendor_match_threshold", 60)),
            vendor_match_threshold_with_invoice=int(payload.get("vendor_match_threshold_with_invoice", 50)),
        )

    @classmethod
    def from_path(cls, path: str | Path) -> "ExtractionRules":
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RulesError(f"Rules file is not valid JSON: {path}", code="invalid_json") from exc
        return cls.from_dict(payload)


def _merge_scores(defaults: dict[str, int], override: Any, name: str) -> dict[str, int]:
    merged = dict(defaults)
    if override is None:
        return merged
    if not isinstance(override, dict):
        raise RulesError(f"{name} must be an object of integer scores", code="invalid_shape")
    for key, value in override.items():
        try:
            merged[str(key)] = int(value)
        except (TypeError, ValueError) as exc:
            raise RulesError(f"{name}.{key} must be an integer", code="invalid_score") from exc
    return merged


DEFAULT_RULES = ExtractionRules()
