"""Fold per-row outcomes into the final import report."""

from collections.abc import Iterable

from profile_importer.lib.importer.types import Committed, ImportReport, RowOutcome, ValidationIssue


def reason_text(issues: Iterable[ValidationIssue]) -> str:
    """Join issues into a single ``field: message; field: message`` string."""
    return "; ".join(issue.describe() for issue in issues)


def build_report(outcomes: Iterable[RowOutcome]) -> ImportReport:
    """Split outcomes into committed and rejected lists, preserving order.

    Args:
        outcomes: Per-row outcomes from the commit executor.

    Returns:
        The immutable report.
    """
    imported = []
    rejected = []
    for outcome in outcomes:
        if isinstance(outcome, Committed):
            imported.append(outcome.record)
        else:
            rejected.append((outcome.record, outcome.issues))
    return ImportReport(imported=tuple(imported), rejected=tuple(rejected))
