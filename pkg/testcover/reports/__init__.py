"""Coverage report emission: JSON snapshot plus pluggable renderers."""

from .context import FileEntry, ReportContext
from .emitter import (
    DEFAULT_REPORTS,
    RENDERERS,
    SUPPORTED_REPORT_FORMATS,
    create_report,
    emit,
    render_reports,
    snapshot_name,
    write_snapshot,
)
from .summary import CoverageSummary, Totals, summarize, summarize_all

__all__ = [
    "CoverageSummary",
    "DEFAULT_REPORTS",
    "FileEntry",
    "RENDERERS",
    "ReportContext",
    "SUPPORTED_REPORT_FORMATS",
    "Totals",
    "create_report",
    "emit",
    "render_reports",
    "snapshot_name",
    "summarize",
    "summarize_all",
    "write_snapshot",
]
