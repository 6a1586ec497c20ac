"""Import CLI commands for profile CSV files."""

import asyncio
from pathlib import Path

import typer

from profile_importer.lib.importer import FeedFormatError, ImportStats, parse_feed

import_app = typer.Typer()


@import_app.command("profiles")
def import_profiles(
    file: Path = typer.Argument(..., help="Path to profile CSV file", exists=True, dir_okay=False),  # noqa: B008
    preview: bool = typer.Option(False, "--preview", help="Classify rows without importing"),
    report_dir: Path | None = typer.Option(None, "--report-dir", help="Directory for report files"),  # noqa: B008
) -> None:
    """Import profiles from a CSV file."""
    try:
        text = file.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        typer.echo(f"Error: {file.name} is not valid UTF-8 text: {exc.reason}", err=True)
        raise typer.Exit(code=1) from exc

    try:
        # Header problems are reported before touching the database
        parse_feed(text)
        if preview:
            asyncio.run(_preview_profiles(text))
        else:
            asyncio.run(_import_profiles(file.name, text, report_dir))
    except FeedFormatError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


async def _preview_profiles(text: str) -> None:
    """Async implementation of the dry run."""
    from profile_importer.core.config import get_settings
    from profile_importer.core.database import dispose_engine, get_session_factory, init_engine
    from profile_importer.services.import_service import preview_profile_import

    settings = get_settings()
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            preview = await preview_profile_import(session, text, settings)
    finally:
        await dispose_engine()

    typer.echo("Preview (nothing written):")
    typer.echo(f"  Rows:           {preview.total}")
    typer.echo(f"  New:            {preview.new}")
    typer.echo(f"  Phone updates:  {preview.phone_updates}")
    typer.echo(f"  Rejected:       {preview.rejected}")
    typer.echo(f"  Duplicates:     {preview.duplicates}")
    typer.echo(f"  Skipped:        {preview.skipped}")
    for row in preview.rows:
        for issue in row.issues:
            if issue.severity == "error":
                typer.echo(f"  Row {row.row}: {issue.field}: {issue.message}")


def _print_progress(stats: ImportStats) -> None:
    if stats.processed == stats.total or stats.processed % 50 == 0:
        typer.echo(f"  {stats.processed}/{stats.total} rows processed")


async def _import_profiles(file_name: str, text: str, report_dir: Path | None) -> None:
    """Async implementation of profile import."""
    from profile_importer.core.config import get_settings
    from profile_importer.core.database import dispose_engine, get_session_factory, init_engine
    from profile_importer.services.import_service import create_import_job, process_profile_import

    settings = get_settings()
    if report_dir is not None:
        settings = settings.model_copy(update={"report_dir": str(report_dir)})
    init_engine(settings.database_url)

    try:
        factory = get_session_factory()
        async with factory() as session:
            job = await create_import_job(session, file_name=file_name)
            typer.echo(f"Import job created: {job.id}")

            result = await process_profile_import(session, job, text, settings, on_progress=_print_progress)
            job, stats = result.job, result.stats

            typer.echo(f"\nImport {job.status}:")
            typer.echo(f"  Total records:  {stats.total}")
            typer.echo(f"  Succeeded:      {stats.successful}")
            typer.echo(f"  Failed:         {stats.failed}")
            typer.echo(f"  Duplicates:     {stats.duplicates}")
            typer.echo(f"  Inserted:       {job.records_inserted or 0}")
            typer.echo(f"  Updated:        {job.records_updated or 0}")
            typer.echo(f"  Skipped:        {job.records_skipped or 0}")
            typer.echo(f"  Imported report: {job.imported_report_path}")
            typer.echo(f"  Rejected report: {job.rejected_report_path}")
    finally:
        await dispose_engine()


@import_app.command("template")
def write_template_cmd(
    output: Path = typer.Argument(..., help="Path to write the CSV template"),  # noqa: B008
) -> None:
    """Write the profile import CSV template."""
    from profile_importer.lib.exporter import write_template

    count = write_template(output)
    typer.echo(f"Template written to {output} ({count} sample rows)")
