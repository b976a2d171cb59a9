"""Console tables, written to stdout."""

from __future__ import annotations

import sys
from typing import TextIO

from .context import ReportContext
from .summary import CoverageSummary, Totals

COLUMNS = ("% Stmts", "% Branch", "% Funcs", "% Lines", "Uncovered Line #s")


def format_pct(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def line_ranges(lines: list[int]) -> str:
    """Collapse sorted line numbers into `1-3,7` form."""
    parts: list[str] = []
    start = previous = None
    for line in lines:
        if start is None:
            start = previous = line
            continue
        if line == previous + 1:
            previous = line
            continue
        parts.append(str(start) if start == previous else f"{start}-{previous}")
        start = previous = line
    if start is not None:
        parts.append(str(start) if start == previous else f"{start}-{previous}")
    return ",".join(parts)


def _row(name: str, summary: CoverageSummary, uncovered: str) -> list[str]:
    return [
        name,
        format_pct(summary.statements.pct),
        format_pct(summary.branches.pct),
        format_pct(summary.functions.pct),
        format_pct(summary.lines.pct),
        uncovered,
    ]


class TextReport:
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def render(self, context: ReportContext) -> None:
        rows = [["File", *COLUMNS], _row("All files", context.total, "")]
        for entry in context.entries:
            rows.append(_row(f" {entry.name}", entry.summary, line_ranges(entry.coverage.uncovered_lines())))

        widths = [max(len(row[idx]) for row in rows) for idx in range(len(COLUMNS) + 1)]
        divider = "-|-".join("-" * width for width in widths)

        out = [divider]
        for idx, row in enumerate(rows):
            cells = [row[0].ljust(widths[0])] + [cell.rjust(widths[col]) for col, cell in enumerate(row[1:], 1)]
            out.append(" | ".join(cells).rstrip())
            if idx == 0:
                out.append(divider)
        out.append(divider)
        print("\n".join(out), file=self._stream or sys.stdout)


def _summary_line(label: str, totals: Totals) -> str:
    return f"{label.ljust(12)} : {format_pct(totals.pct)}% ( {totals.covered}/{totals.total} )"


class TextSummaryReport:
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def render(self, context: ReportContext) -> None:
        total = context.total
        out = [
            " Coverage summary ".center(80, "="),
            _summary_line("Statements", total.statements),
            _summary_line("Branches", total.branches),
            _summary_line("Functions", total.functions),
            _summary_line("Lines", total.lines),
            "=" * 80,
        ]
        print("\n".join(out), file=self._stream or sys.stdout)
