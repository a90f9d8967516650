from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from schemas.expense_schema import ExtractedFields, VendorProfile
from smartfill.rules import DEFAULT_RULES, ExtractionRules
from smartfill.vendor_index import (
    VendorLookupIndex,
    address_tokens,
    name_tokens,
    normalize_invoice_number,
    normalize_vendor_name,
    profile_invoice_numbers,
    profile_name_keys,
    profile_tokens,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchDetails:
    vendor: str | None = None
    invoice_number: str | None = None
    vendor_country: str | None = None
    currency: str | None = None
    vendor_address: str | None = None

    @classmethod
    def from_fields(cls, fields: ExtractedFields) -> "MatchDetails":
        return cls(
            vendor=fields.vendor,
            invoice_number=fields.invoice_number,
            vendor_country=fields.vendor_country,
            currency=fields.currency,
            vendor_address=fields.vendor_address,
        )


@dataclass(frozen=True)
class VendorMatch:
    profile: VendorProfile
    score: int
    reason: str


def _candidate_bases(
    details: MatchDetails,
    index: VendorLookupIndex,
    profiles: Sequence[VendorProfile],
    weights: dict[str, int],
) -> dict[str, int]:
    bases: dict[str, int] = {}

    def add(profile: VendorProfile, amount: int) -> None:
        bases[profile.id] = bases.get(profile.id, 0) + amount

    name_key = normalize_vendor_name(details.vendor)
    name_signal = False
    if name_key and name_key in index.by_name:
        add(index.by_name[name_key], weights["base_exact_name"])
        name_signal = True
    for token in name_tokens(details.vendor):
        for profile in index.by_token.get(token, ()):
            add(profile, weights["base_token"])
            name_signal = True

    invoice_key = normalize_invoice_number(details.invoice_number)
    if invoice_key:
        for profile in profiles:
            if invoice_key in profile_invoice_numbers(profile):
                add(profile, weights["base_invoice_number"])

    if not name_signal and len(profiles) == 1:
        add(profiles[0], weights["base_single_profile"])
    return bases


def score_profile(profile: VendorProfile, details: MatchDetails, rules: ExtractionRules = DEFAULT_RULES) -> int:
    """Composite similarity between extracted details and a saved vendor."""
    weights = rules.vendor_match_weights
    score = 0

    name_key = normalize_vendor_name(details.vendor)
    keys = profile_name_keys(profile)
    if name_key:
        if name_key in keys:
            score += weights["exact_name"]
        elif any(name_key in key or key in name_key for key in keys):
            score += weights["name_containment"]

    candidate_tokens = set(name_tokens(details.vendor))
    known_tokens = set(profile_tokens(profile))
    shared = len(candidate_tokens & known_tokens)
    score += weights["per_shared_token"] * shared
    if shared and shared >= min(2, len(known_tokens)):
        score += weights["shared_token_bonus"]

    invoice_key = normalize_invoice_number(details.invoice_number)
    if invoice_key and invoice_key in profile_invoice_numbers(profile):
        score += weights["invoice_number"]

    country = (details.vendor_country or "").upper()
    if country and (country == (profile.country or "").upper() or country in {c.upper() for c in profile.countries}):
        score += weights["country"]

    currency = (details.currency or "").upper()
    if currency:
        if currency == (profile.preferred_currency or "").upper():
            score += weights["preferred_currency"]
        elif currency in {c.upper() for c in profile.currencies}:
            score += weights["secondary_currency"]

    known_address = address_tokens(" ".join(filter(None, [profile.primary_address, *profile.addresses])))
    if len(address_tokens(details.vendor_address) & known_address) >= 2:
        score += weights["address_tokens"]

    score += min(weights["usage_cap"], profile.usage_count)
    return score


def match_vendor(
    details: MatchDetails | ExtractedFields,
    index: VendorLookupIndex,
    profiles: Sequence[VendorProfile],
    *,
    rules: ExtractionRules | None = None,
) -> VendorMatch | None:
    active = rules or DEFAULT_RULES
    if isinstance(details, ExtractedFields):
        details = MatchDetails.from_fields(details)

    invoice_key = normalize_invoice_number(details.invoice_number)
    if invoice_key and invoice_key in index.by_invoice_number:
        profile = index.by_invoice_number[invoice_key]
        return VendorMatch(profile=profile, score=score_profile(profile, details, active), reason="invoice_number")

    bases = _candidate_bases(details, index, profiles, active.vendor_match_weights)
    best: VendorMatch | None = None
    for profile in profiles:
        if profile.id not in bases:
            continue
        total = bases[profile.id] + score_profile(profile, details, active)
        if best is None or total > best.score:
            best = VendorMatch(profile=profile, score=total, reason="scored")

    if best is None:
        return None
    threshold = active.vendor_match_threshold_with_invoice if invoice_key else active.vendor_match_threshold
    if best.score < threshold:
        logger.debug("Best vendor candidate %s scored %d below threshold %d", best.profile.id, best.score, threshold)
        return None
    return best


def find_match(
    details: MatchDetails | ExtractedFields,
    index: VendorLookupIndex,
    profiles: Sequence[VendorProfile],
    *,
    rules: ExtractionRules | None = None,
) -> VendorProfile | None:
    match = match_vendor(details, index, profiles, rules=rules)
    return match.profile if match else None
