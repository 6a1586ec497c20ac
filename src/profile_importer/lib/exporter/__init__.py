"""Exporter library: CSV artifacts produced around a profile import.

Provides the committed/rejected report writers and the input template.
"""

from profile_importer.lib.exporter.csv_writer import (
    EXPORT_COLUMNS,
    REJECTED_COLUMNS,
    TEMPLATE_ROWS,
    render_template,
    write_imported_report,
    write_rejected_report,
    write_template,
)

__all__ = [
    "EXPORT_COLUMNS",
    "REJECTED_COLUMNS",
    "TEMPLATE_ROWS",
    "render_template",
    "write_imported_report",
    "write_rejected_report",
    "write_template",
]
