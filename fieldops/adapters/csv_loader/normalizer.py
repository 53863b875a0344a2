"""CSV value normalization — column names, codes, flags and certification lists."""

from __future__ import annotations

import re

_TRUE_VALUES = {"1", "true", "yes", "y", "si", "oui", "tak"}
_FALSE_VALUES = {"0", "false", "no", "n", "non", "nie"}

_COUNTRY_ALIASES: dict[str, str] = {
    "spain": "ES",
    "espana": "ES",
    "españa": "ES",
    "italy": "IT",
    "italia": "IT",
    "poland": "PL",
    "polska": "PL",
    "france": "FR",
    "portugal": "PT",
}


def normalize_column_name(name: str) -> str:
    """Normalize a CSV column name.

    - Removes BOM characters (\\ufeff) and surrounding whitespace
    - Replaces runs of spaces / non-breaking spaces with a single underscore
    - Lowercases and drops anything that is not alphanumeric or underscore
    """
    name = name.replace("\ufeff", "").strip()
    name = re.sub(r"[\s\u00a0]+", "_", name)
    name = name.lower()
    name = re.sub(r"[^\w]", "", name, flags=re.UNICODE)
    return name


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def normalize_country_code(raw: str | None) -> str | None:
    """'es', ' Spain ', 'ES' → 'ES'. Unknown names longer than 2 chars give None."""
    value = clean_string(raw)
    if value is None:
        return None
    if len(value) == 2 and value.isalpha():
        return value.upper()
    return _COUNTRY_ALIASES.get(value.lower())


def parse_certifications(raw: str | None) -> set[str]:
    """Parse 'electrical, gas;HVAC' into {'ELECTRICAL', 'GAS', 'HVAC'}.

    Separators are comma, semicolon, pipe or whitespace.
    """
    if not raw:
        return set()
    parts = re.split(r"[,;|\s]+", raw.strip())
    return {p.strip().upper() for p in parts if p.strip()}


def parse_bool(raw: str | None, default: bool = True) -> bool:
    value = clean_string(raw)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def parse_risk_status(raw: str | None) -> str:
    """'on watch', 'On-Watch' → 'ON_WATCH'. Empty means OK."""
    value = clean_string(raw)
    if value is None:
        return "OK"
    return re.sub(r"[\s\-]+", "_", value).upper()
