"""Hit/total roll-ups used by every report format."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from ..coverage_data import FileCoverage


@dataclass(frozen=True)
class Totals:
    total: int = 0
    covered: int = 0
    skipped: int = 0

    @property
    def pct(self) -> float:
        if self.total == 0:
            return 100.0
        # Truncate rather than round so 99.999% never reads as 100%.
        return math.floor(self.covered * 10000 / self.total) / 100

    def __add__(self, other: "Totals") -> "Totals":
        return Totals(self.total + other.total, self.covered + other.covered, self.skipped + other.skipped)

    def to_dict(self) -> dict[str, float | int]:
        return {"total": self.total, "covered": self.covered, "skipped": self.skipped, "pct": self.pct}


@dataclass(frozen=True)
class CoverageSummary:
    lines: Totals = field(default_factory=Totals)
    statements: Totals = field(default_factory=Totals)
    functions: Totals = field(default_factory=Totals)
    branches: Totals = field(default_factory=Totals)

    def __add__(self, other: "CoverageSummary") -> "CoverageSummary":
        return CoverageSummary(
            lines=self.lines + other.lines,
            statements=self.statements + other.statements,
            functions=self.functions + other.functions,
            branches=self.branches + other.branches,
        )

    def to_dict(self) -> dict[str, dict[str, float | int]]:
        return {
            "lines": self.lines.to_dict(),
            "statements": self.statements.to_dict(),
            "functions": self.functions.to_dict(),
            "branches": self.branches.to_dict(),
        }


def _count(hits: Iterable[int]) -> Totals:
    values = list(hits)
    return Totals(total=len(values), covered=sum(1 for value in values if value > 0))


def summarize(file_coverage: FileCoverage) -> CoverageSummary:
    return CoverageSummary(
        lines=_count(file_coverage.line_coverage().values()),
        statements=_count(file_coverage.s),
        functions=_count(file_coverage.f),
        branches=_count(hits for counts in file_coverage.b for hits in counts),
    )


def summarize_all(file_coverages: Iterable[FileCoverage]) -> CoverageSummary:
    total = CoverageSummary()
    for file_coverage in file_coverages:
        total = total + summarize(file_coverage)
    return total
