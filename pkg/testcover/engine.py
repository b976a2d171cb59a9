"""Adapter around pytest: takes test files in, hands a failure count back."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import pytest

from .errors import TestExecutionError

FATAL_EXIT_CODES = {pytest.ExitCode.INTERRUPTED, pytest.ExitCode.INTERNAL_ERROR, pytest.ExitCode.USAGE_ERROR}

# A module that fails to import counts as a failure; the other files still run.
DEFAULT_ARGS = ("--continue-on-collection-errors",)


class Engine(Protocol):
    def add_file(self, path: str) -> None:
        ...

    def run(self) -> int:
        ...


class FailureTally:
    """pytest plugin collecting the node ids of failed tests and failed collections."""

    def __init__(self) -> None:
        self.failed: set[str] = set()

    @property
    def failures(self) -> int:
        return len(self.failed)

    def pytest_runtest_logreport(self, report) -> None:
        # setup, call and teardown each report; one test fails at most once.
        if report.failed:
            self.failed.add(report.nodeid)

    def pytest_collectreport(self, report) -> None:
        if report.failed:
            self.failed.add(report.nodeid)


@dataclass
class PytestEngine:
    """Runs the collected files in-process with `pytest.main`."""

    __test__ = False

    args: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    def add_file(self, path: str) -> None:
        self.files.append(str(path))

    def run(self) -> int:
        # With no paths pytest would collect from the cwd or its ini testpaths.
        if not self.files:
            return 0
        tally = FailureTally()
        exit_code = pytest.main([*DEFAULT_ARGS, *self.args, *self.files], plugins=[tally])
        if exit_code in FATAL_EXIT_CODES:
            raise TestExecutionError(f"pytest exited with {exit_code!r}")
        return tally.failures
