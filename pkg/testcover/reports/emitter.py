"""Writes the coverage snapshot and dispatches to the report renderers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable, Iterable, Protocol

from ..coverage_data import CoverageMap
from ..errors import UnsupportedReportFormat
from .context import ReportContext
from .html import HtmlReport
from .json_report import JsonReport, JsonSummaryReport
from .lcov import LcovOnlyReport, LcovReport
from .text import TextReport, TextSummaryReport


class Report(Protocol):
    def render(self, context: ReportContext) -> None:
        ...


RENDERERS: dict[str, Callable[[], Report]] = {
    "html": HtmlReport,
    "json": JsonReport,
    "json-summary": JsonSummaryReport,
    "lcov": LcovReport,
    "lcovonly": LcovOnlyReport,
    "text": TextReport,
    "text-summary": TextSummaryReport,
}

SUPPORTED_REPORT_FORMATS = frozenset(RENDERERS)
DEFAULT_REPORTS = ("lcovonly",)


def create_report(report_type: str) -> Report:
    factory = RENDERERS.get(report_type) if isinstance(report_type, str) else None
    if factory is None:
        raise UnsupportedReportFormat(report_type)
    return factory()


def _resolve(report_types: Iterable[str] | None) -> list[Report]:
    # Resolve every identifier before anything is written.
    if isinstance(report_types, (list, tuple)) and report_types:
        types = list(report_types)
    else:
        types = list(DEFAULT_REPORTS)
    return [create_report(report_type) for report_type in types]


def _render(reports: list[Report], context: ReportContext) -> None:
    for report in reports:
        report.render(context)


def snapshot_name(include_pid: bool = False, pid: int | None = None) -> str:
    if not include_pid:
        return "coverage.json"
    return f"coverage-{os.getpid() if pid is None else pid}.json"


def write_snapshot(coverage_map: CoverageMap, output_dir: str | Path, *, include_pid: bool = False, pid: int | None = None) -> Path:
    path = Path(output_dir) / snapshot_name(include_pid, pid)
    path.write_text(json.dumps(coverage_map.to_dict(), sort_keys=True), encoding="utf-8")
    return path


def emit(
    coverage_map: CoverageMap,
    output_dir: str | Path,
    report_types: Iterable[str] | None = None,
    *,
    include_pid: bool = False,
    pid: int | None = None,
) -> Path:
    """Write `coverage[-<pid>].json` and every requested report into `output_dir`.

    Synchronous from start to finish: this runs from the interpreter's exit
    handlers, which do not wait for anything scheduled elsewhere.
    """
    reports = _resolve(report_types)
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    snapshot = write_snapshot(coverage_map, out_dir, include_pid=include_pid, pid=pid)
    _render(reports, ReportContext(out_dir, coverage_map))
    return snapshot


def render_reports(coverage_map: CoverageMap, output_dir: str | Path, report_types: Iterable[str] | None = None) -> None:
    """Render reports only, leaving any snapshot files in `output_dir` alone."""
    reports = _resolve(report_types)
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    _render(reports, ReportContext(out_dir, coverage_map))
