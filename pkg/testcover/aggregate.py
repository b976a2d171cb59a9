"""Merges live counters with zero-hit records for files the run never imported."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from typing import Mapping

from .coverage_data import CoverageMap, FileCoverage
from .hook import SourceFileSet, normalize_path
from .instrument import Instrumenter
from .sourcemap import load_source_map, transform_coverage

NO_COVERAGE_MESSAGE = "No coverage information was collected, exit without writing coverage information"


def read_source(path: str) -> str:
    return importlib.util.decode_source(Path(path).read_bytes())


def zero_coverage(path: str, instrumenter: Instrumenter) -> FileCoverage:
    """Instrument `path` without running it and return its all-zero record."""
    instrumenter.instrument_tree(read_source(path), path, load_source_map(path))
    file_coverage = instrumenter.file_coverage(path).copy()
    # The file never ran, so nothing in it may show as hit.
    file_coverage.reset_counters()
    return file_coverage


def aggregate(
    counter_table: Mapping[str, FileCoverage] | None,
    source_files: SourceFileSet,
    instrumenter: Instrumenter | None = None,
) -> CoverageMap | None:
    """Build the run's CoverageMap: one record per member of `source_files`.

    Returns None, after saying so on stderr, when nothing was collected.
    """
    if not counter_table:
        print(f"testcover: {NO_COVERAGE_MESSAGE}", file=sys.stderr)
        return None

    discovery = instrumenter or Instrumenter(getattr(counter_table, "key", "__cov__"))
    live = {normalize_path(path): record for path, record in counter_table.items()}

    coverage_map = CoverageMap()
    for path in source_files:
        record = live.get(path)
        if record is None:
            record = zero_coverage(path, discovery)
        coverage_map.add(record)

    return transform_coverage(coverage_map)
