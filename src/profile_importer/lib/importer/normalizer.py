"""Field normalization for candidate profile rows.

Phone numbers are canonicalized to the local ``0`` + nine digits form.
Spreadsheet tools silently turn long phone numbers into scientific notation
(``2.56E+11``), which drops digits; such values are never reconstructed.
"""

import re
from collections.abc import Mapping

from profile_importer.lib.importer.types import CandidateRecord

DEFAULT_COUNTRY_CODE = "256"

SCIENTIFIC_NOTATION_PATTERN = re.compile(r"\d[eE][+-]?\d+")
CANONICAL_PHONE_PATTERN = re.compile(r"0\d{9}")

_PHONE_SEPARATORS = re.compile(r"[\s\-()]")


def is_scientific_notation(value: str | None) -> bool:
    """Check whether a value looks like a spreadsheet-mangled number."""
    if not value:
        return False
    return SCIENTIFIC_NOTATION_PATTERN.search(value) is not None


def normalize_phone(value: str | None, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Normalize a free-text phone number to ``0XXXXXXXXX``.

    Accepts ``+<cc>…``, ``00<cc>…``, ``<cc>…`` and ``0…`` spellings with
    spaces, dashes or parentheses.

    Args:
        value: Raw phone value.
        country_code: International dialing code without ``+``.

    Returns:
        The canonical phone, or ``""`` if the value is absent, in scientific
        notation, or cannot be coerced to the canonical shape.
    """
    if not value:
        return ""
    raw = value.strip()
    if is_scientific_notation(raw):
        return ""

    cleaned = _PHONE_SEPARATORS.sub("", raw)
    for prefix in (f"+{country_code}", f"00{country_code}", country_code):
        if cleaned.startswith(prefix):
            cleaned = "0" + cleaned[len(prefix) :]
            break

    return cleaned if CANONICAL_PHONE_PATTERN.fullmatch(cleaned) else ""


def phone_variants(canonical: str, country_code: str = DEFAULT_COUNTRY_CODE) -> list[str]:
    """List the spellings a stored phone equal to ``canonical`` may use."""
    local = canonical[1:]
    return [canonical, f"+{country_code}{local}", f"{country_code}{local}"]


def normalize_text(value: str | None) -> str | None:
    """Trim a value; blank becomes ``None``."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_email(value: str | None) -> str | None:
    """Trim and lowercase an email; blank becomes ``None``."""
    stripped = normalize_text(value)
    return stripped.lower() if stripped else None


def normalize_enum(value: str | None) -> str | None:
    """Trim and lowercase an enumerated value; blank becomes ``None``."""
    stripped = normalize_text(value)
    return stripped.lower() if stripped else None


def build_candidate(
    mapping: Mapping[str, str],
    row_number: int,
    country_code: str = DEFAULT_COUNTRY_CODE,
) -> CandidateRecord:
    """Build a normalized ``CandidateRecord`` from a field mapping.

    Args:
        mapping: Canonical field name → raw value for one row.
        row_number: Physical line number of the row.
        country_code: Dialing code used for phone normalization.

    Returns:
        The normalized record.
    """
    raw_phone = normalize_text(mapping.get("phone"))
    return CandidateRecord(
        row_number=row_number,
        full_name=normalize_text(mapping.get("full_name")),
        email=normalize_email(mapping.get("email")),
        phone=normalize_phone(raw_phone, country_code) or None,
        raw_phone=raw_phone,
        account_type=normalize_enum(mapping.get("account_type")),
        nationality=normalize_text(mapping.get("nationality")),
        country_of_residence=normalize_text(mapping.get("country_of_residence")),
        town_city=normalize_text(mapping.get("town_city")),
        date_of_birth=normalize_text(mapping.get("date_of_birth")),
        gender=normalize_enum(mapping.get("gender")),
        tin=normalize_text(mapping.get("tin")),
        address=normalize_text(mapping.get("address")),
    )
