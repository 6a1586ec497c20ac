"""Unit tests for importer executor module."""

import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from profile_importer.lib.importer.errors import SideEffectError
from profile_importer.lib.importer.executor import BatchCommitExecutor, CommitPolicy, format_code, parse_code_number
from profile_importer.lib.importer.types import (
    CandidateRecord,
    ClassifiedRecord,
    Committed,
    ExistingIdentityRef,
    ImportStats,
    IssueKind,
    RecordCategory,
    Rejected,
    ValidationIssue,
)

NO_PAUSE = CommitPolicy(pause_seconds=0)


def _new(row: int, name: str = "Person", **fields: object) -> ClassifiedRecord:
    record = CandidateRecord(row_number=row, full_name=name, email=f"p{row}@x.com", **fields)  # type: ignore[arg-type]
    return ClassifiedRecord(record=record, category=RecordCategory.NEW)


def _rejected(row: int) -> ClassifiedRecord:
    record = CandidateRecord(row_number=row, full_name=None, email=f"p{row}@x.com")
    issue = ValidationIssue(row=row, field="full_name", message="Full name is required")
    return ClassifiedRecord(record=record, category=RecordCategory.REJECTED, issues=(issue,))


class TestReferralCodes:
    """Tests for referral code helpers."""

    def test_parse(self) -> None:
        """The numeric suffix of a code is extracted."""
        assert parse_code_number("YWT00042", "YWT") == 42

    @pytest.mark.parametrize("code", [None, "", "ABC00042", "YWTabc", "YWT"])
    def test_parse_unusable(self, code: str | None) -> None:
        """Absent or malformed codes parse to zero."""
        assert parse_code_number(code, "YWT") == 0

    def test_format(self) -> None:
        """Codes are zero-padded to the width."""
        assert format_code("YWT", 7, 5) == "YWT00007"

    def test_format_overflows_width(self) -> None:
        """Numbers wider than the padding are not truncated."""
        assert format_code("YWT", 123456, 5) == "YWT123456"


class TestBatchCommitExecutor:
    """Tests for the batch commit loop."""

    @pytest.mark.asyncio
    async def test_inserts_new_rows_with_sequential_codes(self, fake_store, fake_provisioner) -> None:
        """New rows get codes after the stored maximum."""
        fake_store.max_code = "YWT00010"
        batch_id = uuid.uuid4()
        executor = BatchCommitExecutor(fake_store, fake_provisioner, NO_PAUSE, batch_id=batch_id)
        stats = ImportStats()

        outcomes = await executor.run([_new(2), _new(3)], stats)

        assert [o.referral_code for o in outcomes] == ["YWT00011", "YWT00012"]  # type: ignore[union-attr]
        assert [i.referral_code for i in fake_store.inserted] == ["YWT00011", "YWT00012"]
        assert all(i.import_batch_id == batch_id for i in fake_store.inserted)
        assert fake_provisioner.provisioned == [i.id for i in fake_store.inserted]
        assert stats.total == 2
        assert stats.successful == 2
        assert stats.processed == 2

    @pytest.mark.asyncio
    async def test_codes_follow_file_position(self, fake_store) -> None:
        """Skipped rows still consume their ordinal."""
        executor = BatchCommitExecutor(fake_store, policy=NO_PAUSE)

        outcomes = await executor.run([_new(2), _rejected(3), _new(4)], ImportStats())

        assert isinstance(outcomes[1], Rejected)
        assert [i.referral_code for i in fake_store.inserted] == ["YWT00001", "YWT00003"]

    @pytest.mark.asyncio
    async def test_new_identity_fields(self, fake_store) -> None:
        """The insert payload carries the normalized fields and parsed date."""
        executor = BatchCommitExecutor(fake_store, policy=NO_PAUSE)
        item = _new(2, name="Jane", phone="0700000000", date_of_birth="1985-05-15", gender="female")

        await executor.run([item], ImportStats())

        identity = fake_store.inserted[0]
        assert identity.full_name == "Jane"
        assert identity.phone == "0700000000"
        assert identity.date_of_birth == date(1985, 5, 15)
        assert identity.account_type == "individual"
        assert identity.gender == "female"

    @pytest.mark.asyncio
    async def test_rejected_rows_counted(self, fake_store) -> None:
        """Rejected rows are counted failed and leave gaps in codes."""
        stats = ImportStats()
        outcomes = await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run([_rejected(2)], stats)

        assert isinstance(outcomes[0], Rejected)
        assert outcomes[0].issues[0].message == "Full name is required"
        assert stats.failed == 1
        assert fake_store.inserted == []

    @pytest.mark.asyncio
    async def test_phone_update(self, fake_store) -> None:
        """Phone update rows change only the phone of the matched identity."""
        ref = ExistingIdentityRef(id=uuid.uuid4(), email="a@x.com", phone=None)
        fake_store.identities[ref.id] = ref
        record = CandidateRecord(row_number=2, full_name="A", email="a@x.com", phone="0700000000")
        item = ClassifiedRecord(record=record, category=RecordCategory.PHONE_UPDATE, existing=ref)

        outcomes = await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run([item], ImportStats())

        assert outcomes[0] == Committed(record=record, identity_id=ref.id, action=RecordCategory.PHONE_UPDATE)
        assert fake_store.phone_updates == [(ref.id, "0700000000")]
        assert fake_store.identities[ref.id].email == "a@x.com"
        assert fake_store.inserted == []

    @pytest.mark.asyncio
    async def test_phone_update_failure_is_rejected(self, fake_store) -> None:
        """A failed phone update becomes an Update failed rejection."""
        ref = ExistingIdentityRef(id=uuid.uuid4(), email="a@x.com", phone=None)
        fake_store.identities[ref.id] = ref
        fake_store.fail_update = True
        record = CandidateRecord(row_number=2, full_name="A", email="a@x.com", phone="0700000000")
        item = ClassifiedRecord(record=record, category=RecordCategory.PHONE_UPDATE, existing=ref)
        stats = ImportStats()

        outcomes = await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run([item], stats)

        assert isinstance(outcomes[0], Rejected)
        issue = outcomes[0].issues[0]
        assert issue.field == "database"
        assert issue.message == "Update failed: row locked"
        assert issue.kind == IssueKind.COMMIT
        assert stats.failed == 1

    @pytest.mark.asyncio
    async def test_insert_failure_does_not_abort_batch(self, fake_store) -> None:
        """A failed insert rejects its row and the batch continues."""
        fake_store.fail_insert_for = {"Bad"}
        stats = ImportStats()

        outcomes = await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run(
            [_new(2, name="Bad"), _new(3, name="Good")], stats
        )

        assert isinstance(outcomes[0], Rejected)
        assert outcomes[0].issues[0].message.startswith("Database error: duplicate key")
        assert isinstance(outcomes[1], Committed)
        assert (stats.successful, stats.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_system_issue(self, fake_store) -> None:
        """Unexpected exceptions become a system issue."""
        fake_store.crash_insert_for = {"Crash"}

        outcomes = await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run(
            [_new(2, name="Crash"), _new(3)], ImportStats()
        )

        assert isinstance(outcomes[0], Rejected)
        assert outcomes[0].issues[0].field == "system"
        assert outcomes[0].issues[0].message == "Failed to import record"
        assert isinstance(outcomes[1], Committed)

    @pytest.mark.asyncio
    async def test_final_guard_rejects_missing_contact(self, fake_store) -> None:
        """New rows without name or contact are rejected at commit."""
        record = CandidateRecord(row_number=2, full_name="No Contact")
        item = ClassifiedRecord(record=record, category=RecordCategory.NEW)

        outcomes = await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run([item], ImportStats())

        assert isinstance(outcomes[0], Rejected)
        assert outcomes[0].issues[0].field == "required"
        assert fake_store.inserted == []

    @pytest.mark.asyncio
    async def test_provisioning_failure_keeps_success(self, fake_store) -> None:
        """A provisioning failure does not undo the committed row."""
        provisioner = AsyncMock()
        provisioner.provision.side_effect = SideEffectError("wallet service unavailable")
        stats = ImportStats()

        outcomes = await BatchCommitExecutor(fake_store, provisioner, NO_PAUSE).run([_new(2)], stats)

        assert isinstance(outcomes[0], Committed)
        assert stats.successful == 1
        provisioner.provision.assert_awaited_once_with(fake_store.inserted[0].id)

    @pytest.mark.asyncio
    async def test_progress_snapshots(self, fake_store) -> None:
        """The progress callback gets an independent snapshot per row."""
        snapshots: list[ImportStats] = []
        executor = BatchCommitExecutor(fake_store, policy=NO_PAUSE, on_progress=snapshots.append)

        await executor.run([_new(2), _rejected(3), _new(4)], ImportStats())

        assert [s.processed for s in snapshots] == [1, 2, 3]
        assert [s.failed for s in snapshots] == [0, 1, 1]
        assert snapshots[0] is not snapshots[1]

    @pytest.mark.asyncio
    async def test_failing_progress_callback_does_not_stop_batch(self, fake_store) -> None:
        """A progress observer that raises never aborts the remaining rows."""

        def explode(stats: ImportStats) -> None:
            raise RuntimeError("renderer crashed")

        stats = ImportStats()
        executor = BatchCommitExecutor(fake_store, policy=NO_PAUSE, on_progress=explode)

        outcomes = await executor.run([_new(2), _new(3)], stats)

        assert all(isinstance(o, Committed) for o in outcomes)
        assert (stats.processed, stats.successful) == (2, 2)
        assert len(fake_store.inserted) == 2

    @pytest.mark.asyncio
    async def test_pauses_every_nth_row(self, fake_store) -> None:
        """The executor sleeps after every pause_every rows."""
        policy = CommitPolicy(pause_every=2, pause_seconds=0.2)
        executor = BatchCommitExecutor(fake_store, policy=policy)

        with patch("profile_importer.lib.importer.executor.asyncio.sleep", new=AsyncMock()) as sleep:
            await executor.run([_new(n) for n in range(2, 7)], ImportStats())

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.2)

    @pytest.mark.asyncio
    async def test_no_pause_when_disabled(self, fake_store) -> None:
        """No sleep happens when pause_seconds is zero."""
        with patch("profile_importer.lib.importer.executor.asyncio.sleep", new=AsyncMock()) as sleep:
            await BatchCommitExecutor(fake_store, policy=NO_PAUSE).run([_new(n) for n in range(2, 9)], ImportStats())

        sleep.assert_not_awaited()
