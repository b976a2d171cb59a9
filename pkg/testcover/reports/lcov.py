"""LCOV tracefile output (`lcov.info`)."""

from __future__ import annotations

from ..coverage_data import FileCoverage
from .context import ReportContext
from .html import HtmlReport
from .summary import summarize

LCOV_FILE = "lcov.info"


def render_record(file_coverage: FileCoverage) -> list[str]:
    summary = summarize(file_coverage)
    lines = ["TN:", f"SF:{file_coverage.path}"]

    for meta in file_coverage.fn_map:
        lines.append(f"FN:{meta.decl.start.line},{meta.name}")
    for meta, hits in zip(file_coverage.fn_map, file_coverage.f):
        lines.append(f"FNDA:{hits},{meta.name}")
    lines.append(f"FNF:{summary.functions.total}")
    lines.append(f"FNH:{summary.functions.covered}")

    for line, hits in file_coverage.line_coverage().items():
        lines.append(f"DA:{line},{hits}")
    lines.append(f"LF:{summary.lines.total}")
    lines.append(f"LH:{summary.lines.covered}")

    for block, (meta, counts) in enumerate(zip(file_coverage.branch_map, file_coverage.b)):
        # "-" marks a branch point that was never reached at all.
        reached = sum(counts) > 0
        for path, hits in enumerate(counts):
            lines.append(f"BRDA:{meta.line},{block},{path},{hits if reached else '-'}")
    lines.append(f"BRF:{summary.branches.total}")
    lines.append(f"BRH:{summary.branches.covered}")
    lines.append("end_of_record")
    return lines


class LcovOnlyReport:
    def render(self, context: ReportContext) -> None:
        lines: list[str] = []
        for entry in context.entries:
            lines.extend(render_record(entry.coverage))
        context.write_file(LCOV_FILE, "\n".join(lines) + "\n" if lines else "")


class LcovReport:
    """`lcov.info` plus the HTML report under `lcov-report/`."""

    def render(self, context: ReportContext) -> None:
        LcovOnlyReport().render(context)
        HtmlReport(subdir="lcov-report").render(context)
