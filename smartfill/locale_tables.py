from __future__ import annotations

from typing import Final

EU_COUNTRIES: Final[tuple[tuple[str, str], ...]] = (
    ("AT", "Austria"),
    ("BE", "Belgium"),
    ("BG", "Bulgaria"),
    ("HR", "Croatia"),
    ("CY", "Cyprus"),
    ("CZ", "Czech Republic"),
    ("DK", "Denmark"),
    ("EE", "Estonia"),
    ("FI", "Finland"),
    ("FR", "France"),
    ("DE", "Germany"),
    ("GR", "Greece"),
    ("HU", "Hungary"),
    ("IE", "Ireland"),
    ("IT", "Italy"),
    ("LV", "Latvia"),
    ("LT", "Lithuania"),
    ("LU", "Luxembourg"),
    ("MT", "Malta"),
    ("NL", "Netherlands"),
    ("PL", "Poland"),
    ("PT", "Portugal"),
    ("RO", "Romania"),
    ("SK", "Slovakia"),
    ("SI", "Slovenia"),
    ("ES", "Spain"),
    ("SE", "Sweden"),
)

# Native spellings that show up on locally issued invoices.
EU_COUNTRY_ALIASES: Final[dict[str, str]] = {
    "nederland": "NL",
    "the netherlands": "NL",
    "holland": "NL",
    "deutschland": "DE",
    "belgie": "BE",
    "belgië": "BE",
    "belgique": "BE",
    "österreich": "AT",
    "osterreich": "AT",
    "espana": "ES",
    "españa": "ES",
    "italia": "IT",
    "czechia": "CZ",
    "sverige": "SE",
    "danmark": "DK",
    "suomi": "FI",
    "polska": "PL",
    "eire": "IE",
}

GLOBAL_COUNTRY_KEYWORDS: Final[dict[str, str]] = {
    "united kingdom": "GB",
    "great britain": "GB",
    "england": "GB",
    "scotland": "GB",
    "wales": "GB",
    "british": "GB",
    "united states": "US",
    "usa": "US",
    "u.s.a.": "US",
    "american": "US",
    "switzerland": "CH",
    "swiss": "CH",
    "schweiz": "CH",
    "norway": "NO",
    "norwegian": "NO",
    "canada": "CA",
    "canadian": "CA",
    "australia": "AU",
    "australian": "AU",
    "singapore": "SG",
    "japan": "JP",
    "india": "IN",
    "dutch": "NL",
    "german": "DE",
    "french": "FR",
    "belgian": "BE",
    "irish": "IE",
    "spanish": "ES",
    "italian": "IT",
    "portuguese": "PT",
    "swedish": "SE",
    "danish": "DK",
    "finnish": "FI",
    "polish": "PL",
    "austrian": "AT",
}

CITY_COUNTRIES: Final[dict[str, str]] = {
    "amsterdam": "NL",
    "rotterdam": "NL",
    "utrecht": "NL",
    "den haag": "NL",
    "the hague": "NL",
    "eindhoven": "NL",
    "groningen": "NL",
    "berlin": "DE",
    "munich": "DE",
    "münchen": "DE",
    "hamburg": "DE",
    "frankfurt": "DE",
    "cologne": "DE",
    "köln": "DE",
    "paris": "FR",
    "lyon": "FR",
    "marseille": "FR",
    "brussels": "BE",
    "bruxelles": "BE",
    "brussel": "BE",
    "antwerp": "BE",
    "antwerpen": "BE",
    "ghent": "BE",
    "dublin": "IE",
    "madrid": "ES",
    "barcelona": "ES",
    "rome": "IT",
    "milan": "IT",
    "milano": "IT",
    "vienna": "AT",
    "wien": "AT",
    "lisbon": "PT",
    "lisboa": "PT",
    "stockholm": "SE",
    "copenhagen": "DK",
    "københavn": "DK",
    "helsinki": "FI",
    "warsaw": "PL",
    "prague": "CZ",
    "tallinn": "EE",
    "luxembourg": "LU",
    "london": "GB",
    "manchester": "GB",
    "edinburgh": "GB",
    "new york": "US",
    "san francisco": "US",
    "seattle": "US",
    "austin": "US",
    "zurich": "CH",
    "zürich": "CH",
    "geneva": "CH",
    "oslo": "NO",
    "toronto": "CA",
    "sydney": "AU",
}

# Two-letter codes accepted as bare tokens. Codes that collide with common
# legal-entity suffixes (SA, AG, AB, AS) are left out on purpose.
ISO_COUNTRY_CODES: Final[frozenset[str]] = frozenset(
    [code for code, _ in EU_COUNTRIES] + ["GB", "UK", "US", "CH", "NO", "CA", "AU", "SG", "JP", "IN"]
)

# VAT prefixes that differ from the ISO code.
VAT_PREFIX_COUNTRIES: Final[dict[str, str]] = {"EL": "GR", "XI": "GB", "UK": "GB"}

# (currency, symbols, lower-case words); first entry with a hit wins.
CURRENCY_MARKERS: Final[tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...]] = (
    ("EUR", ("€",), ("eur", "euro", "euros")),
    ("USD", ("$",), ("usd",)),
    ("GBP", ("£",), ("gbp", "pounds")),
    ("CHF", (), ("chf",)),
    ("SEK", (), ("sek",)),
    ("DKK", (), ("dkk",)),
    ("NOK", (), ("nok",)),
    ("PLN", ("zł",), ("pln",)),
)

LEGAL_ENTITY_SUFFIXES: Final[tuple[str, ...]] = (
    "ltd",
    "limited",
    "inc",
    "llc",
    "llp",
    "plc",
    "gmbh",
    "b.v.",
    "bv",
    "n.v.",
    "nv",
    "s.a.",
    "sa",
    "s.r.l.",
    "srl",
    "sarl",
    "s.l.",
    "ag",
    "ab",
    "oy",
    "corp",
    "corporation",
    "co.",
    "v.o.f.",
    "vof",
)


def country_code_for_label(label: str) -> str | None:
    key = label.strip().lower()
    for code, name in EU_COUNTRIES:
        if name.lower() == key:
            return code
    return EU_COUNTRY_ALIASES.get(key) or GLOBAL_COUNTRY_KEYWORDS.get(key)


def normalize_country_code(code: str) -> str:
    upper = code.strip().upper()
    if upper == "UK":
        return "GB"
    return VAT_PREFIX_COUNTRIES.get(upper, upper)
