"""ImportJob model: tracks one profile import run."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from profile_importer.models.base import Base, JSONType, UUIDMixin


class ImportJob(Base, UUIDMixin):
    """Tracks a profile import: status, counters, error log and report files."""

    __tablename__ = "import_jobs"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending", index=True
    )

    # Record counts
    total_records: Mapped[int | None] = mapped_column(Integer, nullable=True)
    records_succeeded: Mapped[int | None] = mapped_column(Integer, nullable=True)
    records_failed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    records_inserted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    records_updated: Mapped[int | None] = mapped_column(Integer, nullable=True)
    records_duplicates: Mapped[int | None] = mapped_column(Integer, nullable=True)
    records_skipped: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Error tracking
    error_log: Mapped[list[dict] | None] = mapped_column(JSONType, nullable=True)

    # Report files
    imported_report_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    rejected_report_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
