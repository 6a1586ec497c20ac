"""Duplicate and conflict classification of candidate rows.

Cross-references each normalized row against the rows seen earlier in the
same batch and against identities already in the store, then assigns a
``RecordCategory``. Email is the primary match key; a phone collision
without an email match is ambiguous and is rejected rather than guessed.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from profile_importer.lib.importer.normalizer import DEFAULT_COUNTRY_CODE, normalize_email, normalize_phone
from profile_importer.lib.importer.store import IdentityStore
from profile_importer.lib.importer.types import (
    CandidateRecord,
    ClassifiedRecord,
    ExistingIdentityRef,
    ImportStats,
    IssueKind,
    RecordCategory,
    ValidationIssue,
)
from profile_importer.lib.importer.validator import has_hard_issues


@dataclass(frozen=True)
class IdentityLookup:
    """Read-only index of stored identities by normalized email and phone."""

    by_email: dict[str, ExistingIdentityRef] = field(default_factory=dict)
    by_phone: dict[str, ExistingIdentityRef] = field(default_factory=dict)

    @classmethod
    def from_refs(
        cls,
        refs: Iterable[ExistingIdentityRef],
        country_code: str = DEFAULT_COUNTRY_CODE,
    ) -> "IdentityLookup":
        """Index store results; stored phones are normalized before keying."""
        by_email: dict[str, ExistingIdentityRef] = {}
        by_phone: dict[str, ExistingIdentityRef] = {}
        for ref in refs:
            email = normalize_email(ref.email)
            phone = normalize_phone(ref.phone, country_code)
            if email:
                by_email.setdefault(email, ref)
            if phone:
                by_phone.setdefault(phone, ref)
        return cls(by_email=by_email, by_phone=by_phone)


@dataclass
class BatchContext:
    """State carried across one batch: lookup table, seen sets, counters."""

    lookup: IdentityLookup
    stats: ImportStats = field(default_factory=ImportStats)
    seen_emails: set[str] = field(default_factory=set)
    seen_phones: set[str] = field(default_factory=set)
    country_code: str = DEFAULT_COUNTRY_CODE


async def fetch_existing_identities(
    store: IdentityStore,
    records: Iterable[CandidateRecord],
    country_code: str = DEFAULT_COUNTRY_CODE,
) -> IdentityLookup:
    """Resolve stored identities for every candidate email and phone at once.

    Args:
        store: Identity store to query.
        records: All candidate records of the batch.
        country_code: Dialing code for normalizing stored phones.

    Returns:
        The lookup table consumed by the classifier.
    """
    emails: set[str] = set()
    phones: set[str] = set()
    for record in records:
        if record.email:
            emails.add(record.email)
        if record.phone:
            phones.add(record.phone)

    if not emails and not phones:
        return IdentityLookup()

    refs = await store.find_existing(sorted(emails), sorted(phones))
    logger.info(f"Found {len(refs)} existing identities for {len(emails)} emails and {len(phones)} phones")
    return IdentityLookup.from_refs(refs, country_code)


def _conflict(record: CandidateRecord, field_name: str, message: str, value: str | None) -> ValidationIssue:
    return ValidationIssue(
        row=record.row_number,
        field=field_name,
        message=message,
        value=value,
        kind=IssueKind.CONFLICT,
    )


def classify_record(
    record: CandidateRecord,
    issues: Sequence[ValidationIssue],
    context: BatchContext,
) -> ClassifiedRecord:
    """Assign a category to one row.

    Args:
        record: The normalized row.
        issues: Validation issues already found for the row.
        context: Batch state; its seen sets and duplicate counter are updated.

    Returns:
        The classified record carrying validation and conflict issues.
    """
    found = list(issues)
    category = RecordCategory.NEW
    existing: ExistingIdentityRef | None = None
    duplicate = False

    if record.email:
        if record.email in context.seen_emails:
            found.append(_conflict(record, "email", "Duplicate email in file", record.email))
            duplicate = True
        context.seen_emails.add(record.email)

    if record.phone:
        if record.phone in context.seen_phones:
            found.append(_conflict(record, "phone", "Duplicate phone in file", record.phone))
            duplicate = True
        context.seen_phones.add(record.phone)

    conflict = duplicate
    if not duplicate:
        email_match = context.lookup.by_email.get(record.email) if record.email else None
        phone_match = context.lookup.by_phone.get(record.phone) if record.phone else None

        if email_match is not None:
            stored_phone = normalize_phone(email_match.phone, context.country_code) or None
            if record.phone and record.phone != stored_phone:
                if phone_match is not None and phone_match.id != email_match.id:
                    found.append(_conflict(record, "phone", "Phone already exists in database", record.phone))
                    conflict = True
                else:
                    category = RecordCategory.PHONE_UPDATE
                    existing = email_match
            else:
                found.append(_conflict(record, "email", "Profile already exists with same data", record.email))
                conflict = True
        elif phone_match is not None:
            found.append(_conflict(record, "phone", "Phone already exists in database", record.phone))
            conflict = True

    if conflict:
        context.stats.duplicates += 1
        category = RecordCategory.REJECTED
        existing = None
    elif has_hard_issues(found):
        category = RecordCategory.REJECTED
        existing = None

    return ClassifiedRecord(record=record, category=category, issues=tuple(found), existing=existing)


def classify_batch(
    prepared: Iterable[tuple[CandidateRecord, Sequence[ValidationIssue]]],
    context: BatchContext,
) -> list[ClassifiedRecord]:
    """Classify every row of a batch in file order.

    Args:
        prepared: ``(record, validation issues)`` pairs in file order.
        context: Batch state shared across rows.

    Returns:
        Classified records in the same order.
    """
    classified = [classify_record(record, issues, context) for record, issues in prepared]

    counts = {category: 0 for category in RecordCategory}
    for item in classified:
        counts[item.category] += 1
    logger.info(
        f"Classified {len(classified)} rows: {counts[RecordCategory.NEW]} new, "
        f"{counts[RecordCategory.PHONE_UPDATE]} phone updates, {counts[RecordCategory.REJECTED]} rejected "
        f"({context.stats.duplicates} duplicates)"
    )
    return classified
