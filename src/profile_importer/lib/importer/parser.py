"""Quote-aware delimited-text parser for profile import feeds.

Splits raw text into lines and each line into fields, honoring double-quote
quoting with ``""`` as an escaped literal quote. The header row is mapped to
canonical field names once per batch.
"""

import re

from loguru import logger

from profile_importer.lib.importer.errors import FeedFormatError
from profile_importer.lib.importer.types import IssueKind, ParsedFeed, RawRow, Severity, ValidationIssue

# Normalized header → canonical field name
PROFILE_COLUMN_MAP: dict[str, str] = {
    "full_name": "full_name",
    "name": "full_name",
    "email": "email",
    "email_address": "email",
    "phone": "phone",
    "phone_number": "phone",
    "mobile": "phone",
    "account_type": "account_type",
    "user_type": "account_type",
    "nationality": "nationality",
    "country_of_residence": "country_of_residence",
    "country": "country_of_residence",
    "town_city": "town_city",
    "town": "town_city",
    "city": "town_city",
    "date_of_birth": "date_of_birth",
    "dob": "date_of_birth",
    "birth_date": "date_of_birth",
    "gender": "gender",
    "tin": "tin",
    "tax_id": "tin",
    "address": "address",
}

REQUIRED_COLUMNS = ("full_name",)
CONTACT_COLUMNS = ("email", "phone")

_HEADER_SEPARATORS = re.compile(r"[\s\-/]+")
_LINE_BREAK = re.compile(r"\r?\n")


def normalize_header(header: str) -> str:
    """Reduce a header cell to its lookup key (``Town/City`` → ``town_city``)."""
    return _HEADER_SEPARATORS.sub("_", header.strip().lower()).strip("_")


def parse_line(line: str) -> list[str]:
    """Split one line into trimmed fields.

    A double quote toggles quoting, except that ``""`` inside a quoted
    section emits one literal quote. Commas separate fields only outside
    quotes.

    Args:
        line: A single line of delimited text, without its line terminator.

    Returns:
        The ordered list of field values.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def map_columns(headers: list[str]) -> tuple[str | None, ...]:
    """Resolve header cells to canonical field names.

    Args:
        headers: Header cells as parsed from the first line.

    Returns:
        Canonical field name per position, ``None`` for unknown columns.
    """
    columns: list[str | None] = []
    for header in headers:
        column = PROFILE_COLUMN_MAP.get(normalize_header(header))
        if column is None:
            logger.debug(f"Ignoring unknown column: {header!r}")
        elif normalize_header(header) != column:
            logger.debug(f"Column {header!r} mapped to field {column!r}")
        columns.append(column)
    return tuple(columns)


def _check_required_columns(columns: tuple[str | None, ...]) -> None:
    present = {c for c in columns if c is not None}
    missing = [c for c in REQUIRED_COLUMNS if c not in present]
    if missing:
        msg = f"Missing required headers: {', '.join(missing)}"
        raise FeedFormatError(msg)
    if not any(c in present for c in CONTACT_COLUMNS):
        msg = "CSV must contain at least one contact method column: email or phone"
        raise FeedFormatError(msg)


def parse_feed(text: str) -> ParsedFeed:
    """Parse a full import feed into header mapping and data rows.

    Lines end at LF or CRLF only; other Unicode line separators stay inside
    their field. Blank lines are ignored. Rows with fewer fields than the
    header are skipped with a warning and reported on ``ParsedFeed.skipped``.

    Args:
        text: The whole input text.

    Returns:
        The parsed feed.

    Raises:
        FeedFormatError: If the header lacks required columns or there is
            no data row.
    """
    text = text.removeprefix("\ufeff")
    lines = [(number, line) for number, line in enumerate(_LINE_BREAK.split(text), start=1) if line.strip()]

    if len(lines) < 2:
        msg = "CSV file must contain at least a header row and one data row"
        raise FeedFormatError(msg)

    _, header_line = lines[0]
    headers = parse_line(header_line)
    columns = map_columns(headers)
    _check_required_columns(columns)

    feed = ParsedFeed(headers=tuple(headers), columns=columns)
    for row_number, line in lines[1:]:
        values = parse_line(line)
        if len(values) < len(headers):
            logger.warning(f"Row {row_number} has insufficient columns: {len(values)} vs {len(headers)}")
            feed.skipped.append(
                ValidationIssue(
                    row=row_number,
                    field="row",
                    message=f"Row has {len(values)} fields, expected {len(headers)}",
                    value=line,
                    kind=IssueKind.PARSE,
                    severity=Severity.WARNING,
                )
            )
            continue
        feed.rows.append(RawRow(row_number=row_number, fields=tuple(values)))

    logger.info(f"Parsed {len(feed.rows)} data rows ({len(feed.skipped)} skipped) with columns {list(headers)}")
    return feed
