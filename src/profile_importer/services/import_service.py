"""Import service: orchestrates profile imports and tracks them as jobs.

One run is a single forward pass: parse, normalize and validate, look up
existing profiles once, classify, commit row by row, then write the
imported/rejected reports and store counters on the ``ImportJob``.
"""

import math
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profile_importer.core.config import Settings
from profile_importer.lib.exporter import write_imported_report, write_rejected_report
from profile_importer.lib.importer import (
    BatchCommitExecutor,
    BatchContext,
    CandidateRecord,
    ClassifiedRecord,
    CommitPolicy,
    Committed,
    FeedFormatError,
    ImportReport,
    ImportStats,
    IssueKind,
    ParsedFeed,
    RecordCategory,
    RowOutcome,
    ValidationIssue,
    build_candidate,
    build_report,
    classify_batch,
    fetch_existing_identities,
    parse_feed,
    validate_record,
)
from profile_importer.models.import_job import ImportJob
from profile_importer.schemas.imports import (
    ImportPreviewResponse,
    IssueResponse,
    PreviewRowResponse,
)
from profile_importer.services.identity_store import SqlAlchemyIdentityStore
from profile_importer.services.wallet_service import WalletProvisioner

IMPORTED_REPORT_NAME = "imported_profiles.csv"
REJECTED_REPORT_NAME = "rejected_profiles.csv"

PreparedRow = tuple[CandidateRecord, list[ValidationIssue]]


@dataclass
class ImportResult:
    """Outcome of ``process_profile_import``."""

    job: ImportJob
    stats: ImportStats
    report: ImportReport


def commit_policy(settings: Settings) -> CommitPolicy:
    """Build the executor policy from application settings."""
    return CommitPolicy(
        code_prefix=settings.referral_code_prefix,
        code_width=settings.referral_code_width,
        pause_every=settings.import_pause_every,
        pause_seconds=settings.import_pause_seconds,
    )


async def create_import_job(session: AsyncSession, *, file_name: str) -> ImportJob:
    """Create a new pending import job.

    Args:
        session: Database session.
        file_name: Original filename.

    Returns:
        The created ImportJob.
    """
    job = ImportJob(file_name=file_name, status="pending")
    session.add(job)
    await session.commit()
    await session.refresh(job)
    return job


async def get_import_job(session: AsyncSession, job_id: uuid.UUID) -> ImportJob | None:
    """Get an import job by ID."""
    result = await session.execute(select(ImportJob).where(ImportJob.id == job_id))
    return result.scalar_one_or_none()


async def list_import_jobs(
    session: AsyncSession,
    *,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ImportJob], int]:
    """List import jobs, newest first.

    Args:
        session: Database session.
        status: Filter by status.
        page: Page number.
        page_size: Items per page.

    Returns:
        Tuple of (jobs, total count).
    """
    query = select(ImportJob)
    count_query = select(func.count(ImportJob.id))
    if status:
        query = query.where(ImportJob.status == status)
        count_query = count_query.where(ImportJob.status == status)

    total = (await session.execute(count_query)).scalar_one()
    offset = (page - 1) * page_size
    query = query.order_by(ImportJob.created_at.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    return list(result.scalars().all()), total


def total_pages(total: int, page_size: int) -> int:
    """Number of pages for a paginated listing (at least 1)."""
    return max(1, math.ceil(total / page_size))


def prepare_rows(
    feed: ParsedFeed,
    country_code: str,
    today: date | None = None,
) -> list[PreparedRow]:
    """Normalize and validate every parsed row.

    Args:
        feed: The parsed feed.
        country_code: Dialing code used for phone normalization.
        today: Reference date for date-of-birth checks.

    Returns:
        ``(record, issues)`` pairs in file order.
    """
    prepared: list[PreparedRow] = []
    for row in feed.rows:
        record = build_candidate(feed.to_mapping(row), row.row_number, country_code)
        prepared.append((record, validate_record(record, today=today, country_code=country_code)))
    return prepared


async def _classify(
    store: SqlAlchemyIdentityStore,
    feed: ParsedFeed,
    settings: Settings,
) -> tuple[list[ClassifiedRecord], BatchContext]:
    country_code = settings.phone_country_code
    prepared = prepare_rows(feed, country_code)
    lookup = await fetch_existing_identities(store, [record for record, _ in prepared], country_code)
    context = BatchContext(lookup=lookup, country_code=country_code)
    return classify_batch(prepared, context), context


def _issue_response(issue: ValidationIssue) -> IssueResponse:
    return IssueResponse.model_validate(issue.to_dict())


async def preview_profile_import(session: AsyncSession, text: str, settings: Settings) -> ImportPreviewResponse:
    """Classify an import file without writing anything.

    Raises:
        FeedFormatError: If the file cannot be processed at all.
    """
    feed = parse_feed(text)
    store = SqlAlchemyIdentityStore(
        session,
        lookup_batch_size=settings.import_lookup_batch_size,
        country_code=settings.phone_country_code,
    )
    classified, context = await _classify(store, feed, settings)

    counts = {category: 0 for category in RecordCategory}
    rows = []
    for item in classified:
        counts[item.category] += 1
        rows.append(
            PreviewRowResponse(
                row=item.record.row_number,
                full_name=item.record.full_name,
                email=item.record.email,
                phone=item.record.phone or item.record.raw_phone,
                category=str(item.category),
                issues=[_issue_response(issue) for issue in item.issues],
            )
        )

    return ImportPreviewResponse(
        total=len(classified),
        new=counts[RecordCategory.NEW],
        phone_updates=counts[RecordCategory.PHONE_UPDATE],
        rejected=counts[RecordCategory.REJECTED],
        duplicates=context.stats.duplicates,
        skipped=len(feed.skipped),
        rows=rows,
        skipped_rows=[_issue_response(issue) for issue in feed.skipped],
    )


def write_reports(report: ImportReport, directory: Path) -> tuple[Path, Path]:
    """Write the imported and rejected CSV reports into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    imported_path = directory / IMPORTED_REPORT_NAME
    rejected_path = directory / REJECTED_REPORT_NAME
    write_imported_report(imported_path, report.imported)
    write_rejected_report(rejected_path, report.rejected)
    return imported_path, rejected_path


def _build_error_log(
    feed: ParsedFeed,
    classified: Sequence[ClassifiedRecord],
    outcomes: Sequence[RowOutcome],
) -> list[dict]:
    entries = [issue.to_dict() for issue in feed.skipped]
    for item, outcome in zip(classified, outcomes, strict=True):
        issues = list(item.issues)
        if not isinstance(outcome, Committed):
            issues.extend(issue for issue in outcome.issues if issue.kind == IssueKind.COMMIT)
        entries.extend(issue.to_dict() for issue in issues)
    return entries


async def process_profile_import(
    session: AsyncSession,
    job: ImportJob,
    text: str,
    settings: Settings,
    *,
    on_progress: Callable[[ImportStats], None] | None = None,
) -> ImportResult:
    """Run a full profile import for ``job``.

    Args:
        session: Database session; rows are committed individually on it.
        job: The ImportJob to track progress.
        text: The uploaded file contents.
        settings: Application settings.
        on_progress: Optional callback receiving a stats snapshot per row.

    Returns:
        The updated job, final counters and the report.

    Raises:
        FeedFormatError: If the file cannot be processed at all; the job is
            marked failed first.
    """
    job_id = job.id
    job.status = "running"
    job.started_at = datetime.now(UTC)
    await session.commit()

    try:
        feed = parse_feed(text)
        store = SqlAlchemyIdentityStore(
            session,
            lookup_batch_size=settings.import_lookup_batch_size,
            country_code=settings.phone_country_code,
        )
        classified, context = await _classify(store, feed, settings)

        executor = BatchCommitExecutor(
            store,
            WalletProvisioner(session, settings.wallet_currency_list),
            commit_policy(settings),
            batch_id=job_id,
            on_progress=on_progress,
        )
        outcomes = await executor.run(classified, context.stats)
        report = build_report(outcomes)
        imported_path, rejected_path = write_reports(report, Path(settings.report_dir) / str(job_id))

        stats = context.stats
        # Per-row commits and rollbacks expire the job; reload before writing
        await session.refresh(job)
        job.status = "completed"
        job.total_records = stats.total
        job.records_succeeded = stats.successful
        job.records_failed = stats.failed
        job.records_inserted = sum(
            1 for o in outcomes if isinstance(o, Committed) and o.action == RecordCategory.NEW
        )
        job.records_updated = sum(
            1 for o in outcomes if isinstance(o, Committed) and o.action == RecordCategory.PHONE_UPDATE
        )
        job.records_duplicates = stats.duplicates
        job.records_skipped = len(feed.skipped)
        job.error_log = _build_error_log(feed, classified, outcomes) or None
        job.imported_report_path = str(imported_path)
        job.rejected_report_path = str(rejected_path)
        job.completed_at = datetime.now(UTC)
        await session.commit()

        logger.info(
            f"Import {job_id} completed: {stats.total} total, {stats.successful} succeeded, "
            f"{stats.failed} failed, {stats.duplicates} duplicates, {len(feed.skipped)} skipped"
        )

    except FeedFormatError as exc:
        logger.warning(f"Import {job_id} rejected: {exc}")
        await _mark_failed(session, job, [{"row": 0, "field": "file", "message": str(exc)}])
        raise

    except Exception:
        logger.exception(f"Import {job_id} failed")
        await _mark_failed(session, job, None)
        raise

    return ImportResult(job=job, stats=stats, report=report)


async def _mark_failed(session: AsyncSession, job: ImportJob, error_log: list[dict] | None) -> None:
    await session.rollback()
    await session.refresh(job)
    job.status = "failed"
    job.error_log = error_log
    job.completed_at = datetime.now(UTC)
    await session.commit()
