#!/usr/bin/env python3
"""Merge per-process coverage snapshots and render reports from the result.

Reads every `coverage.json` / `coverage-<pid>.json` in COVERAGE_DIR, sums the
counters file by file, and renders the requested report formats. Prints the
number of snapshots merged.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pkg.testcover.errors import CoverageError
from pkg.testcover.merge import find_snapshots, merge_snapshots
from pkg.testcover.reports import DEFAULT_REPORTS, SUPPORTED_REPORT_FORMATS, render_reports


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Merge testcover snapshots and render reports.")
    p.add_argument("coverage_dir", help="Directory holding coverage[-<pid>].json snapshots")
    p.add_argument(
        "--reports",
        nargs="+",
        default=list(DEFAULT_REPORTS),
        choices=sorted(SUPPORTED_REPORT_FORMATS),
        help="Report formats to render (default: lcovonly)",
    )
    p.add_argument("--output-dir", default="", help="Where to render reports (default: COVERAGE_DIR)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    snapshots = find_snapshots(args.coverage_dir)
    if not snapshots:
        print(f"merge-coverage: no coverage snapshots found in {args.coverage_dir}", file=sys.stderr)
        return 2

    try:
        coverage_map = merge_snapshots(snapshots)
        render_reports(coverage_map, Path(args.output_dir or args.coverage_dir), args.reports)
    except (CoverageError, OSError) as exc:
        print(f"merge-coverage: {exc}", file=sys.stderr)
        return 1

    print(len(snapshots))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
