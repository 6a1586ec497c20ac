"""Batch commit executor.

Walks classified rows strictly in file order and performs the per-category
action: record rejects, update the phone of matched identities, insert new
identities with sequential referral codes. Each row commits independently;
a failing row is recorded as rejected and the batch continues.
"""

import asyncio
import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from profile_importer.lib.importer.errors import CommitError
from profile_importer.lib.importer.store import IdentityStore, NewIdentity, SubAccountProvisioner
from profile_importer.lib.importer.types import (
    ClassifiedRecord,
    Committed,
    ImportStats,
    IssueKind,
    RecordCategory,
    Rejected,
    RowOutcome,
    ValidationIssue,
)
from profile_importer.lib.importer.validator import DEFAULT_ACCOUNT_TYPE, parse_date_of_birth

ProgressCallback = Callable[[ImportStats], None]


@dataclass(frozen=True)
class CommitPolicy:
    """Tunables for a commit run.

    Attributes:
        code_prefix: Referral code prefix.
        code_width: Zero-padded width of the numeric part.
        pause_every: Pause after every N rows.
        pause_seconds: Length of each pause; 0 disables pausing.
        default_account_type: Account type for rows that do not set one.
    """

    code_prefix: str = "YWT"
    code_width: int = 5
    pause_every: int = 5
    pause_seconds: float = 0.2
    default_account_type: str = DEFAULT_ACCOUNT_TYPE


def parse_code_number(code: str | None, prefix: str) -> int:
    """Extract the numeric part of a referral code (0 if absent or malformed)."""
    if not code or not code.startswith(prefix):
        return 0
    digits = code[len(prefix) :]
    return int(digits) if re.fullmatch(r"\d+", digits) else 0


def format_code(prefix: str, number: int, width: int) -> str:
    """Render a referral code such as ``YWT00042``."""
    return f"{prefix}{number:0{width}d}"


class BatchCommitExecutor:
    """Commits one classified batch against an identity store."""

    def __init__(
        self,
        store: IdentityStore,
        provisioner: SubAccountProvisioner | None = None,
        policy: CommitPolicy | None = None,
        *,
        batch_id: uuid.UUID | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._store = store
        self._provisioner = provisioner
        self._policy = policy or CommitPolicy()
        self._batch_id = batch_id
        self._on_progress = on_progress

    async def run(self, classified: Sequence[ClassifiedRecord], stats: ImportStats) -> list[RowOutcome]:
        """Commit every row and return one outcome per row, in order.

        Args:
            classified: Classified rows in file order.
            stats: Counters to update; ``duplicates`` is left as classified.

        Returns:
            The outcome of every row.
        """
        policy = self._policy
        stats.total = len(classified)
        max_code = await self._store.max_referral_code(policy.code_prefix)
        seed = parse_code_number(max_code, policy.code_prefix)
        logger.info(f"Committing {len(classified)} rows; referral codes continue after {max_code or 'none'}")

        outcomes: list[RowOutcome] = []
        for ordinal, item in enumerate(classified):
            outcome = await self._commit_row(ordinal, item, seed)
            outcomes.append(outcome)

            if isinstance(outcome, Committed):
                stats.successful += 1
            else:
                stats.failed += 1
            stats.processed += 1

            if self._on_progress is not None:
                try:
                    self._on_progress(stats.snapshot())
                except Exception:
                    logger.exception(f"Progress callback failed after row {item.record.row_number}")

            if policy.pause_seconds > 0 and (ordinal + 1) % policy.pause_every == 0:
                await asyncio.sleep(policy.pause_seconds)

        logger.info(
            f"Commit finished: {stats.successful} succeeded, {stats.failed} failed, "
            f"{stats.duplicates} duplicates out of {stats.total}"
        )
        return outcomes

    async def _commit_row(self, ordinal: int, item: ClassifiedRecord, seed: int) -> RowOutcome:
        record = item.record
        try:
            if item.category == RecordCategory.REJECTED:
                return Rejected(record=record, issues=item.hard_issues or item.issues)
            if item.category == RecordCategory.PHONE_UPDATE:
                return await self._update_phone(item)
            return await self._insert_new(ordinal, item, seed)
        except Exception:
            logger.exception(f"Row {record.row_number}: unexpected error while committing")
            return Rejected(
                record=record,
                issues=(self._commit_issue(item, "system", "Failed to import record"),),
            )

    async def _update_phone(self, item: ClassifiedRecord) -> RowOutcome:
        record = item.record
        existing = item.existing
        if existing is None or record.phone is None:
            return Rejected(
                record=record,
                issues=(self._commit_issue(item, "database", "Update failed: no matched identity"),),
            )
        try:
            await self._store.update_phone(existing.id, record.phone)
        except CommitError as exc:
            logger.warning(f"Row {record.row_number}: phone update failed for {existing.id}: {exc}")
            return Rejected(record=record, issues=(self._commit_issue(item, "database", f"Update failed: {exc}"),))

        logger.debug(f"Row {record.row_number}: phone updated for {existing.id}: {existing.phone} -> {record.phone}")
        return Committed(record=record, identity_id=existing.id, action=RecordCategory.PHONE_UPDATE)

    async def _insert_new(self, ordinal: int, item: ClassifiedRecord, seed: int) -> RowOutcome:
        record = item.record
        policy = self._policy
        if not record.full_name or not record.has_contact:
            return Rejected(
                record=record,
                issues=(self._commit_issue(item, "required", "Missing name or contact method (email/phone)"),),
            )

        identity = NewIdentity(
            id=uuid.uuid4(),
            referral_code=format_code(policy.code_prefix, seed + ordinal + 1, policy.code_width),
            full_name=record.full_name,
            email=record.email,
            phone=record.phone,
            account_type=record.account_type or policy.default_account_type,
            nationality=record.nationality,
            country_of_residence=record.country_of_residence,
            town_city=record.town_city,
            date_of_birth=parse_date_of_birth(record.date_of_birth),
            gender=record.gender,
            tin=record.tin,
            address=record.address,
            import_batch_id=self._batch_id,
        )
        try:
            await self._store.insert_identity(identity)
        except CommitError as exc:
            logger.warning(f"Row {record.row_number}: insert failed: {exc}")
            return Rejected(record=record, issues=(self._commit_issue(item, "database", f"Database error: {exc}"),))

        logger.debug(f"Row {record.row_number}: created identity {identity.id} ({identity.referral_code})")
        await self._provision(identity.id, record.row_number)
        return Committed(
            record=record,
            identity_id=identity.id,
            action=RecordCategory.NEW,
            referral_code=identity.referral_code,
        )

    async def _provision(self, identity_id: uuid.UUID, row_number: int) -> None:
        if self._provisioner is None:
            return
        try:
            await self._provisioner.provision(identity_id)
        except Exception as exc:
            # Identity creation already succeeded and stays committed
            logger.warning(f"Row {row_number}: sub-account provisioning failed for {identity_id}: {exc}")

    @staticmethod
    def _commit_issue(item: ClassifiedRecord, field_name: str, message: str) -> ValidationIssue:
        return ValidationIssue(row=item.record.row_number, field=field_name, message=message, kind=IssueKind.COMMIT)
