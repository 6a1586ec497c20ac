"""Import job Pydantic v2 request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from profile_importer.schemas.common import PaginationMeta


class ImportJobResponse(BaseModel):
    """Import job status and counters."""

    id: UUID
    file_name: str
    status: str
    total_records: int | None = None
    records_succeeded: int | None = None
    records_failed: int | None = None
    records_inserted: int | None = None
    records_updated: int | None = None
    records_duplicates: int | None = None
    records_skipped: int | None = None
    error_log: list[dict] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaginatedImportJobResponse(BaseModel):
    """Paginated list of import jobs."""

    items: list[ImportJobResponse]
    pagination: PaginationMeta


class IssueResponse(BaseModel):
    """One row-level issue."""

    row: int
    field: str
    message: str
    value: str | None = None
    kind: str
    severity: str


class PreviewRowResponse(BaseModel):
    """Preview classification of a single row."""

    row: int
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    category: str
    issues: list[IssueResponse] = Field(default_factory=list)


class ImportPreviewResponse(BaseModel):
    """Dry-run summary of an import file; nothing is written."""

    total: int = Field(description="Data rows that parsed")
    new: int = Field(description="Rows that would create a profile")
    phone_updates: int = Field(description="Rows that would update an existing profile's phone")
    rejected: int = Field(description="Rows that would be rejected")
    duplicates: int = Field(description="Rejected rows caused by a duplicate or an existing profile")
    skipped: int = Field(description="Malformed rows dropped by the parser")
    rows: list[PreviewRowResponse] = Field(default_factory=list)
    skipped_rows: list[IssueResponse] = Field(default_factory=list)
