#!/usr/bin/env python3
"""Run a pytest suite with coverage armed from the tests' coverage config.

Usage:
  run-tests.py TESTS_ROOT [--cover-config FILE] [--pattern GLOB ...] [-- PYTEST_ARGS ...]

Prints the number of failing tests. Exits 0 when everything passed, 1 when
tests failed and 2 when the run could not start. Coverage reports are written
when the interpreter exits.
"""

from __future__ import annotations

import argparse
import sys

from pkg.testcover import configure, run
from pkg.testcover.config import DEFAULT_COVER_CONFIG


def split_pytest_args(argv: list[str]) -> tuple[list[str], list[str]]:
    if "--" not in argv:
        return argv, []
    idx = argv.index("--")
    return argv[:idx], argv[idx + 1 :]


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run tests under TESTS_ROOT with testcover coverage.")
    p.add_argument("tests_root", help="Directory holding the test files and the coverage config")
    p.add_argument(
        "--cover-config",
        default=DEFAULT_COVER_CONFIG,
        help=f"Coverage config path relative to TESTS_ROOT (default: {DEFAULT_COVER_CONFIG})",
    )
    p.add_argument(
        "--pattern",
        action="append",
        dest="patterns",
        help="Test file glob relative to TESTS_ROOT (repeatable; default: **/test_*.py and **/*_test.py)",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    own_args, pytest_args = split_pytest_args(sys.argv[1:] if argv is None else argv)
    args = parse_args(own_args)

    run_options = {"coverConfig": args.cover_config}
    if args.patterns:
        run_options["testPatterns"] = args.patterns
    configure(pytest_args, run_options)

    outcome: dict[str, object] = {}

    def done(error: BaseException | None = None, failures: int | None = None) -> None:
        outcome["error"] = error
        outcome["failures"] = failures

    run(args.tests_root, done)

    error = outcome.get("error")
    if error is not None:
        print(f"run-tests: {error}", file=sys.stderr)
        return 2
    failures = int(outcome.get("failures") or 0)
    print(failures)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
