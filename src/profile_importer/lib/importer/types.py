"""Data types for the profile importer pipeline.

Defines the in-memory structures that flow through one batch run:
parsed rows, normalized candidate records, validation issues, the
classification result, running counters, per-row outcomes, and the
final immutable report.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import uuid


class RecordCategory(StrEnum):
    """Action a classified row maps to."""

    NEW = "new"
    PHONE_UPDATE = "phone_update"
    REJECTED = "rejected"


class IssueKind(StrEnum):
    """Pipeline stage that produced an issue."""

    PARSE = "parse"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    COMMIT = "commit"


class Severity(StrEnum):
    """How an issue affects the row. Only ``ERROR`` rejects."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationIssue:
    """A problem tied to one field of one row.

    Attributes:
        row: Physical line number in the input (header is line 1).
        field: Field name the issue refers to (or a pseudo-field such as
            ``contact`` or ``database``).
        message: Human-readable description.
        value: The offending raw value, when there is one.
        kind: Pipeline stage that produced the issue.
        severity: ``ERROR`` rejects the row; other severities are notes.
    """

    row: int
    field: str
    message: str
    value: str | None = None
    kind: IssueKind = IssueKind.VALIDATION
    severity: Severity = Severity.ERROR

    @property
    def is_hard(self) -> bool:
        """Whether this issue rejects the row."""
        return self.severity == Severity.ERROR

    def describe(self) -> str:
        """Render as ``field: message`` for report reason strings."""
        return f"{self.field}: {self.message}"

    def to_dict(self) -> dict[str, object]:
        """Serialize for the import job error log."""
        return {
            "row": self.row,
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "kind": str(self.kind),
            "severity": str(self.severity),
        }


@dataclass(frozen=True)
class RawRow:
    """One parsed data line: positional fields plus its line number."""

    row_number: int
    fields: tuple[str, ...]


@dataclass(frozen=True)
class CandidateRecord:
    """Normalized representation of one input row.

    ``None`` is the absent marker for every optional field. ``phone`` holds
    the canonical local form; ``raw_phone`` keeps the trimmed input so
    diagnostics and the rejected export can show what was supplied.
    """

    row_number: int
    full_name: str | None
    email: str | None = None
    phone: str | None = None
    raw_phone: str | None = None
    account_type: str | None = None
    nationality: str | None = None
    country_of_residence: str | None = None
    town_city: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    tin: str | None = None
    address: str | None = None

    @property
    def has_contact(self) -> bool:
        """Whether at least one usable contact method is present."""
        return bool(self.email or self.phone)

    def to_export_row(self) -> dict[str, str]:
        """Flatten into report columns, falling back to the raw phone."""
        return {
            "full_name": self.full_name or "",
            "email": self.email or "",
            "phone": self.phone or self.raw_phone or "",
            "account_type": self.account_type or "",
            "nationality": self.nationality or "",
            "country_of_residence": self.country_of_residence or "",
            "town_city": self.town_city or "",
            "date_of_birth": self.date_of_birth or "",
            "gender": self.gender or "",
            "tin": self.tin or "",
            "address": self.address or "",
        }


@dataclass(frozen=True)
class ExistingIdentityRef:
    """Minimal view of an identity already in the store."""

    id: uuid.UUID
    email: str | None
    phone: str | None


@dataclass(frozen=True)
class ClassifiedRecord:
    """A candidate record with its category and all collected issues.

    Attributes:
        record: The normalized row.
        category: Action to take at commit time.
        issues: Every issue found for the row, hard and soft.
        existing: The matched identity for ``PHONE_UPDATE`` rows.
    """

    record: CandidateRecord
    category: RecordCategory
    issues: tuple[ValidationIssue, ...] = ()
    existing: ExistingIdentityRef | None = None

    @property
    def hard_issues(self) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.issues if i.is_hard)


@dataclass
class ImportStats:
    """Running counters for one batch; only ever incremented."""

    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    duplicates: int = 0

    def snapshot(self) -> ImportStats:
        """Return an independent copy for progress observers."""
        return dataclasses.replace(self)


@dataclass(frozen=True)
class Committed:
    """Row written to the store (new identity or phone update)."""

    record: CandidateRecord
    identity_id: uuid.UUID
    action: RecordCategory
    referral_code: str | None = None


@dataclass(frozen=True)
class Rejected:
    """Row that was not written, with every reason."""

    record: CandidateRecord
    issues: tuple[ValidationIssue, ...]


RowOutcome = Committed | Rejected


@dataclass(frozen=True)
class ImportReport:
    """Final projection of a batch run. Built once, never mutated."""

    imported: tuple[CandidateRecord, ...] = ()
    rejected: tuple[tuple[CandidateRecord, tuple[ValidationIssue, ...]], ...] = ()


@dataclass
class ParsedFeed:
    """Result of parsing a whole input text.

    Attributes:
        headers: Header cells as they appeared in the input.
        columns: Canonical field name per header position (``None`` for
            unrecognized columns).
        rows: Data rows with at least as many fields as the header.
        skipped: Parse issues for rows that were dropped.
    """

    headers: tuple[str, ...]
    columns: tuple[str | None, ...]
    rows: list[RawRow] = field(default_factory=list)
    skipped: list[ValidationIssue] = field(default_factory=list)

    def to_mapping(self, row: RawRow) -> dict[str, str]:
        """Map a row's positional fields to canonical field names."""
        mapping: dict[str, str] = {}
        for column, value in zip(self.columns, row.fields, strict=False):
            # First occurrence wins when two headers alias the same field
            if column is not None and column not in mapping:
                mapping[column] = value
        return mapping
