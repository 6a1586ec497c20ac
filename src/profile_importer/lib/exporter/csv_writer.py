"""CSV writers for import reports and the import template."""

import csv
import io
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, TextIO

from profile_importer.lib.importer.report import reason_text
from profile_importer.lib.importer.types import CandidateRecord, ValidationIssue

# Characters that trigger formula execution in spreadsheet applications
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

# Phone-like values ("+256 700 000000") are data, not formulas
_NUMERIC_LIKE = re.compile(r"[+-]?[\d\s()\-]+")


def _sanitize_cell(value: object) -> object:
    """Sanitize a cell value to prevent CSV formula injection.

    Prefixes values starting with formula-triggering characters with a
    single quote, except plain numeric values such as international phones.

    Args:
        value: The cell value to sanitize.

    Returns:
        The sanitized value.
    """
    if not isinstance(value, str) or not value or value[0] not in _FORMULA_PREFIXES:
        return value
    if _NUMERIC_LIKE.fullmatch(value):
        return value
    return f"'{value}"


EXPORT_COLUMNS = [
    "full_name",
    "email",
    "phone",
    "account_type",
    "nationality",
    "country_of_residence",
    "town_city",
    "date_of_birth",
    "gender",
    "tin",
    "address",
]

REJECTED_COLUMNS = [*EXPORT_COLUMNS, "error_details"]

TEMPLATE_ROWS: list[dict[str, str]] = [
    {
        "full_name": "John Doe",
        "email": "john@example.com",
        "phone": "+256700000000",
        "account_type": "individual",
        "nationality": "Uganda",
        "country_of_residence": "Uganda",
        "town_city": "Kampala",
        "date_of_birth": "1990-01-01",
        "gender": "male",
        "tin": "123456789",
        "address": "123 Main Street",
    },
    {
        "full_name": "Jane Smith",
        "email": "jane@example.com",
        "phone": "",
        "account_type": "individual",
        "nationality": "Uganda",
        "country_of_residence": "Uganda",
        "town_city": "Entebbe",
        "date_of_birth": "1985-05-15",
        "gender": "female",
        "tin": "987654321",
        "address": "456 Oak Avenue",
    },
    {
        "full_name": "Bob Johnson",
        "email": "",
        "phone": "+256702000000",
        "account_type": "individual",
        "nationality": "Uganda",
        "country_of_residence": "Uganda",
        "town_city": "Jinja",
        "date_of_birth": "1992-03-10",
        "gender": "male",
        "tin": "555666777",
        "address": "789 Pine Road",
    },
]


def _write_rows(handle: TextIO, columns: list[str], rows: Iterable[dict[str, Any]]) -> int:
    writer = csv.DictWriter(handle, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    count = 0
    for row in rows:
        writer.writerow({k: _sanitize_cell(v) for k, v in row.items()})
        count += 1
    return count


def write_imported_report(output_path: Path, records: Iterable[CandidateRecord]) -> int:
    """Write the committed-rows report.

    Args:
        output_path: Path to write the CSV file.
        records: Committed records in file order.

    Returns:
        Number of rows written.
    """
    with output_path.open("w", newline="", encoding="utf-8") as f:
        return _write_rows(f, EXPORT_COLUMNS, (record.to_export_row() for record in records))


def write_rejected_report(
    output_path: Path,
    rejected: Iterable[tuple[CandidateRecord, Sequence[ValidationIssue]]],
) -> int:
    """Write the rejected-rows report with an ``error_details`` column.

    Args:
        output_path: Path to write the CSV file.
        rejected: ``(record, issues)`` pairs in file order.

    Returns:
        Number of rows written.
    """
    rows = ({**record.to_export_row(), "error_details": reason_text(issues)} for record, issues in rejected)
    with output_path.open("w", newline="", encoding="utf-8") as f:
        return _write_rows(f, REJECTED_COLUMNS, rows)


def render_template() -> str:
    """Render the import template (header plus sample rows) as CSV text."""
    buffer = io.StringIO()
    _write_rows(buffer, EXPORT_COLUMNS, TEMPLATE_ROWS)
    return buffer.getvalue()


def write_template(output_path: Path) -> int:
    """Write the import template to ``output_path``; returns the sample row count."""
    with output_path.open("w", newline="", encoding="utf-8") as f:
        return _write_rows(f, EXPORT_COLUMNS, TEMPLATE_ROWS)
