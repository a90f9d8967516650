from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from schemas.expense_schema import VendorProfile

LEGAL_NAME_TOKENS = frozenset(
    {
        "ltd",
        "limited",
        "inc",
        "llc",
        "llp",
        "plc",
        "gmbh",
        "bv",
        "nv",
        "sa",
        "srl",
        "sarl",
        "sl",
        "ag",
        "ab",
        "oy",
        "corp",
        "corporation",
        "co",
        "vof",
    }
)
STOP_TOKENS = frozenset({"the", "and", "van", "der", "den", "for", "of"})


def normalize_vendor_name(name: str | None) -> str:
    """Lower-case, strip punctuation and legal-entity suffixes.

    "Acme Corporation Ltd." and "ACME corp" both normalize to "acme".
    """
    if not name:
        return ""
    text = name.lower().replace("&", " and ").replace(".", "")
    tokens = re.sub(r"[^a-z0-9]+", " ", text).split()
    kept = [t for t in tokens if t not in LEGAL_NAME_TOKENS]
    return " ".join(kept or tokens)


def name_tokens(name: str | None) -> tuple[str, ...]:
    tokens: list[str] = []
    for token in normalize_vendor_name(name).split():
        if token in STOP_TOKENS or (len(token) < 3 and not token.isdigit()):
            continue
        if token not in tokens:
            tokens.append(token)
    return tuple(tokens)


def normalize_invoice_number(value: str | None) -> str:
    if not value:
        return ""
    return re.sub(r"[^A-Z0-9]", "", value.upper())


def address_tokens(address: str | None) -> set[str]:
    if not address:
        return set()
    return {t for t in re.sub(r"[^a-z0-9]+", " ", address.lower()).split() if len(t) >= 2}


def profile_name_keys(profile: VendorProfile) -> tuple[str, ...]:
    keys: list[str] = []
    for key in [profile.normalized_name or normalize_vendor_name(profile.name)] + [
        normalize_vendor_name(n) for n in profile.name_history
    ]:
        if key and key not in keys:
            keys.append(key)
    return tuple(keys)


def profile_tokens(profile: VendorProfile) -> tuple[str, ...]:
    tokens: list[str] = []
    sources = [profile.name, *profile.name_history]
    for source in sources:
        tokens.extend(name_tokens(source))
    tokens.extend(t.strip().lower() for t in profile.search_tokens if t.strip())
    return tuple(dict.fromkeys(tokens))


def profile_invoice_numbers(profile: VendorProfile) -> frozenset[str]:
    values = list(profile.invoice_numbers)
    if profile.last_invoice_number:
        values.append(profile.last_invoice_number)
    return frozenset(n for n in (normalize_invoice_number(v) for v in values) if n)


@dataclass(frozen=True)
class VendorLookupIndex:
    """Read-only lookup snapshot over a vendor profile collection.

    Rebuild it with :meth:`build` whenever the collection changes. The first
    profile registered under a key keeps it.
    """

    by_name: Mapping[str, VendorProfile]
    by_invoice_number: Mapping[str, VendorProfile]
    by_token: Mapping[str, tuple[VendorProfile, ...]]

    @classmethod
    def build(cls, profiles: Iterable[VendorProfile]) -> "VendorLookupIndex":
        by_name: dict[str, VendorProfile] = {}
        by_invoice: dict[str, VendorProfile] = {}
        by_token: dict[str, list[VendorProfile]] = {}
        for profile in profiles:
            for key in profile_name_keys(profile):
                by_name.setdefault(key, profile)
            for number in sorted(profile_invoice_numbers(profile)):
                by_invoice.setdefault(number, profile)
            for token in profile_tokens(profile):
                bucket = by_token.setdefault(token, [])
                if profile not in bucket:
                    bucket.append(profile)
        return cls(
            by_name=MappingProxyType(by_name),
            by_invoice_number=MappingProxyType(by_invoice),
            by_token=MappingProxyType({k: tuple(v) for k, v in by_token.items()}),
        )


@dataclass(frozen=True)
class VendorDirectory:
    profiles: tuple[VendorProfile, ...]
    index: VendorLookupIndex

    @classmethod
    def from_profiles(cls, profiles: Iterable[VendorProfile | dict]) -> "VendorDirectory":
        loaded = tuple(p if isinstance(p, VendorProfile) else VendorProfile.model_validate(p) for p in profiles)
        return cls(profiles=loaded, index=VendorLookupIndex.build(loaded))

    def __len__(self) -> int:
        return len(self.profiles)
