"""Profile record validation rules.

Validates required fields, contact presence, email/phone shape, date of
birth, and enumerated values. All applicable issues are collected so a
report can show every defect of a row at once.
"""

import re
from datetime import UTC, date, datetime

from dateutil.parser import parse as parse_date

from profile_importer.lib.importer.normalizer import DEFAULT_COUNTRY_CODE, is_scientific_notation
from profile_importer.lib.importer.types import CandidateRecord, Severity, ValidationIssue

ACCOUNT_TYPES = frozenset({"individual", "business", "organisation", "minor"})
GENDERS = frozenset({"male", "female", "other", "prefer_not_to_say"})
DEFAULT_ACCOUNT_TYPE = "individual"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def parse_date_of_birth(value: str | None) -> date | None:
    """Parse a date of birth in any common format.

    Args:
        value: Raw date string.

    Returns:
        The parsed date, or None if absent or unparseable.
    """
    if not value:
        return None
    try:
        return parse_date(value).date()
    except (ValueError, OverflowError):
        return None


def _validate_phone(record: CandidateRecord, country_code: str) -> ValidationIssue | None:
    raw = record.raw_phone
    if not raw or record.phone:
        return None
    if is_scientific_notation(raw):
        return ValidationIssue(
            row=record.row_number,
            field="phone",
            message=(
                "Phone in scientific notation (spreadsheet conversion error). "
                f"Format the phone column as text before export: {raw}"
            ),
            value=raw,
        )
    return ValidationIssue(
        row=record.row_number,
        field="phone",
        message=f"Invalid phone format. Expected +{country_code}XXXXXXXXX or 0XXXXXXXXX. Got: {raw}",
        value=raw,
    )


def _validate_date_of_birth(record: CandidateRecord, today: date) -> ValidationIssue | None:
    raw = record.date_of_birth
    if not raw:
        return None
    parsed = parse_date_of_birth(raw)
    if parsed is None:
        return ValidationIssue(row=record.row_number, field="date_of_birth", message="Invalid date format", value=raw)
    if parsed >= today:
        return ValidationIssue(
            row=record.row_number,
            field="date_of_birth",
            message="Date of birth must be in the past",
            value=raw,
        )
    return None


def validate_record(
    record: CandidateRecord,
    *,
    today: date | None = None,
    country_code: str = DEFAULT_COUNTRY_CODE,
) -> list[ValidationIssue]:
    """Validate a single normalized profile record.

    Args:
        record: The normalized record.
        today: Reference date for the date-of-birth check (defaults to now, UTC).
        country_code: Dialing code shown in phone diagnostics.

    Returns:
        Every issue found, hard and informational.
    """
    today = today or datetime.now(UTC).date()
    row = record.row_number
    issues: list[ValidationIssue] = []

    if not record.full_name:
        issues.append(ValidationIssue(row=row, field="full_name", message="Full name is required"))

    if not record.email and not record.raw_phone:
        issues.append(
            ValidationIssue(row=row, field="contact", message="Either email or phone (or both) is required")
        )

    if record.email and not EMAIL_PATTERN.match(record.email):
        issues.append(ValidationIssue(row=row, field="email", message="Invalid email format", value=record.email))

    phone_issue = _validate_phone(record, country_code)
    if phone_issue is not None:
        issues.append(phone_issue)

    dob_issue = _validate_date_of_birth(record, today)
    if dob_issue is not None:
        issues.append(dob_issue)

    if record.account_type is None:
        issues.append(
            ValidationIssue(
                row=row,
                field="account_type",
                message=f"Account type not provided, defaulting to {DEFAULT_ACCOUNT_TYPE}",
                severity=Severity.INFO,
            )
        )
    elif record.account_type not in ACCOUNT_TYPES:
        issues.append(
            ValidationIssue(row=row, field="account_type", message="Invalid account type", value=record.account_type)
        )

    if record.gender is not None and record.gender not in GENDERS:
        issues.append(ValidationIssue(row=row, field="gender", message="Invalid gender", value=record.gender))

    return issues


def has_hard_issues(issues: list[ValidationIssue]) -> bool:
    """Whether any issue in the list rejects the row."""
    return any(issue.is_hard for issue in issues)
