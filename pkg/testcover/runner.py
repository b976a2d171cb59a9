"""Runs a test suite with coverage armed around it.

Lifecycle: configured -> coverage_armed (only when the coverage config asks
for it) -> running -> done. The report is not written on that path at all:
it is produced once, from an exit handler, after the test engine is finished
with the process.
"""

from __future__ import annotations

import ast
import atexit
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Iterable

from .aggregate import aggregate
from .config import CoverOptions, RunOptions, read_cover_options
from .counters import CounterTable
from .discovery import discover_source_files, discover_test_files
from .engine import Engine, PytestEngine
from .errors import CoverageError, CoverageSetupError, TestDiscoveryError
from .hook import SourceFileSet, evict_cached_modules, hook_loader, normalize_path
from .instrument import Instrumenter
from .reports import emit
from .sourcemap import load_source_map

IDLE = "idle"
CONFIGURED = "configured"
COVERAGE_ARMED = "coverage_armed"
RUNNING = "running"
DONE = "done"
REPORT_WRITTEN = "report_written"
REPORT_SKIPPED = "report_skipped"

RunCallback = Callable[..., Any]
ExitRegistrar = Callable[[Callable[[], Any]], Any]


class CoverageRunner:
    """Owns one run's counter table, import hook and exit-time report."""

    def __init__(self, options: CoverOptions, tests_root: str | Path, *, register_exit: ExitRegistrar = atexit.register) -> None:
        if not options.relative_source_path:
            raise CoverageSetupError("relativeSourcePath must be defined for code coverage to work")
        self.options = options
        self.tests_root = Path(tests_root)
        self.counter_table = CounterTable.create()
        self.instrumenter = Instrumenter(self.counter_table.key)
        self.source_files = SourceFileSet(())
        self.report_state: str | None = None
        self._register_exit = register_exit
        self._unhook: Callable[[], None] | None = None
        self._reported = False

    @property
    def source_root(self) -> Path:
        return self.tests_root / str(self.options.relative_source_path)

    @property
    def coverage_dir(self) -> Path:
        return self.tests_root / self.options.relative_coverage_dir

    def transform(self, source: str, filename: str) -> ast.Module:
        return self.instrumenter.instrument_tree(source, filename, load_source_map(filename))

    def prepare_module(self, module: ModuleType) -> None:
        filename = normalize_path(module.__spec__.origin if module.__spec__ else module.__file__)
        record = self.counter_table.record_for(filename, self.instrumenter.file_coverage(filename))
        module.__dict__[self.instrumenter.variable_for(filename)] = record

    def setup_coverage(self) -> None:
        try:
            files = discover_source_files(
                self.source_root,
                self.options.source_pattern,
                self.options.ignore_patterns,
            )
        except TestDiscoveryError as exc:
            raise CoverageSetupError(f"unable to list sources under relativeSourcePath: {exc}") from exc

        self.source_files = SourceFileSet(files)
        # Anything imported before now would keep running uninstrumented.
        evict_cached_modules(self.source_files)
        self._unhook = hook_loader(self.source_files, self.transform, prepare=self.prepare_module)
        self._register_exit(self.report_coverage)

    def report_coverage(self) -> Path | None:
        """Aggregate and write every report. Runs at most once, never suspends.

        Errors are left to propagate into interpreter shutdown.
        """
        if self._reported:
            return None
        self._reported = True
        if self._unhook is not None:
            self._unhook()

        coverage_map = aggregate(self.counter_table, self.source_files, Instrumenter(self.counter_table.key))
        if coverage_map is None:
            self.report_state = REPORT_SKIPPED
            return None

        snapshot = emit(
            coverage_map,
            self.coverage_dir,
            list(self.options.reports),
            include_pid=self.options.include_pid,
        )
        self.report_state = REPORT_WRITTEN
        return snapshot


class SuiteRunner:
    """Discovers test files and hands them to the engine, coverage optional."""

    def __init__(
        self,
        engine: Engine | None = None,
        run_options: RunOptions | None = None,
        *,
        register_exit: ExitRegistrar = atexit.register,
    ) -> None:
        self.engine = engine if engine is not None else PytestEngine()
        self.run_options = run_options or RunOptions()
        self.coverage_runner: CoverageRunner | None = None
        self.state = CONFIGURED
        self._register_exit = register_exit

    def _finish(self, clb: RunCallback, error: BaseException | None, failures: int | None = None) -> Any:
        self.state = DONE
        if error is not None:
            return clb(error)
        return clb(None, failures)

    def _arm_coverage(self, tests_root: str | Path) -> None:
        cover_options = read_cover_options(tests_root, self.run_options)
        if cover_options is None or not cover_options.enabled:
            return
        runner = CoverageRunner(cover_options, tests_root, register_exit=self._register_exit)
        runner.setup_coverage()
        self.coverage_runner = runner
        self.state = COVERAGE_ARMED

    def run(self, tests_root: str | Path, clb: RunCallback) -> Any:
        """Run the suite under `tests_root`; `clb(error)` or `clb(None, failure_count)`."""
        try:
            self._arm_coverage(tests_root)
        except CoverageError as exc:
            return self._finish(clb, exc)

        try:
            files = discover_test_files(tests_root, self.run_options.test_patterns)
        except TestDiscoveryError as exc:
            return self._finish(clb, exc)

        self.state = RUNNING
        try:
            for path in files:
                self.engine.add_file(path)
            failures = self.engine.run()
        except Exception as exc:
            return self._finish(clb, exc)
        return self._finish(clb, None, failures)


_runner: SuiteRunner | None = None


def configure(engine_options: Iterable[str] | None = None, run_options: RunOptions | dict[str, Any] | None = None) -> SuiteRunner:
    """Replace the module-level runner; `engine_options` are extra pytest arguments."""
    global _runner
    _runner = SuiteRunner(PytestEngine(list(engine_options or [])), RunOptions.from_dict(run_options))
    return _runner


def run(tests_root: str | Path, clb: RunCallback) -> Any:
    runner = _runner or configure()
    return runner.run(tests_root, clb)


def current_state() -> str:
    return _runner.state if _runner is not None else IDLE
