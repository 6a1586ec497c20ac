"""Profile import API endpoints.

GET /imports/profiles/template, POST /imports/profiles/preview,
POST /imports/profiles (multipart upload), GET /imports (list jobs),
GET /imports/{job_id} (status), GET /imports/{job_id}/reports/{kind}.
"""

import uuid
from enum import StrEnum
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from profile_importer.core.background import task_runner
from profile_importer.core.config import Settings, get_settings
from profile_importer.core.dependencies import get_async_session
from profile_importer.lib.exporter import render_template
from profile_importer.lib.importer import parse_feed
from profile_importer.schemas.common import PaginationMeta, PaginationParams
from profile_importer.schemas.imports import ImportJobResponse, ImportPreviewResponse, PaginatedImportJobResponse
from profile_importer.services import import_service

router = APIRouter(prefix="/imports", tags=["imports"])

TEMPLATE_FILE_NAME = "profile_import_template.csv"
_NO_FILE_DETAIL = "No file provided"


class ReportKind(StrEnum):
    """Downloadable report of a completed import."""

    IMPORTED = "imported"
    REJECTED = "rejected"


async def _read_upload(file: UploadFile, settings: Settings) -> str:
    """Read an uploaded CSV into text, enforcing the size limit."""
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_NO_FILE_DETAIL)
    content = await file.read()
    if len(content) > settings.import_max_file_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum size of {settings.import_max_file_size_mb} MB",
        )
    # UnicodeDecodeError is a ValueError and maps to 400
    return content.decode("utf-8")


@router.get("/profiles/template")
async def download_template() -> Response:
    """Download the CSV template for profile imports."""
    return Response(
        content=render_template(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILE_NAME}"'},
    )


@router.post("/profiles/preview", response_model=ImportPreviewResponse)
async def preview_profiles(
    file: UploadFile,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImportPreviewResponse:
    """Classify an uploaded file without importing it."""
    text = await _read_upload(file, settings)
    return await import_service.preview_profile_import(session, text, settings)


@router.post("/profiles", response_model=ImportJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def import_profiles(
    file: UploadFile,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImportJobResponse:
    """Upload a profile CSV and import it in the background."""
    text = await _read_upload(file, settings)
    # Header problems are reported before a job exists
    parse_feed(text)

    job = await import_service.create_import_job(session, file_name=file.filename or "upload.csv")
    job_id = job.id

    async def _run_import() -> None:
        from profile_importer.core.database import get_session_factory

        factory = get_session_factory()
        async with factory() as bg_session:
            bg_job = await import_service.get_import_job(bg_session, job_id)
            if bg_job:
                await import_service.process_profile_import(bg_session, bg_job, text, settings)

    task_runner.submit_task(_run_import(), name=f"profile-import-{job_id}")
    return ImportJobResponse.model_validate(job)


@router.get("", response_model=PaginatedImportJobResponse)
async def list_imports(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    import_status: str | None = None,
) -> PaginatedImportJobResponse:
    """List import jobs, newest first."""
    jobs, total = await import_service.list_import_jobs(
        session, status=import_status, page=pagination.page, page_size=pagination.page_size
    )
    return PaginatedImportJobResponse(
        items=[ImportJobResponse.model_validate(j) for j in jobs],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=import_service.total_pages(total, pagination.page_size),
        ),
    )


@router.get("/{job_id}", response_model=ImportJobResponse)
async def get_import(
    job_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ImportJobResponse:
    """Get import job status by ID."""
    job = await import_service.get_import_job(session, job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found")
    return ImportJobResponse.model_validate(job)


@router.get("/{job_id}/reports/{kind}")
async def download_report(
    job_id: uuid.UUID,
    kind: ReportKind,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> FileResponse:
    """Download the imported or rejected rows report of a completed import."""
    job = await import_service.get_import_job(session, job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found")
    if job.status != "completed":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Import is not completed (status: {job.status})",
        )

    if kind == ReportKind.IMPORTED:
        report_path, file_name = job.imported_report_path, import_service.IMPORTED_REPORT_NAME
    else:
        report_path, file_name = job.rejected_report_path, import_service.REJECTED_REPORT_NAME
    if not report_path or not Path(report_path).exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report file not found")

    return FileResponse(path=report_path, media_type="text/csv", filename=file_name)
