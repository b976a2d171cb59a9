"""Import-hook coverage for pytest runs, with zero-hit entries for untouched files."""

from .aggregate import aggregate
from .config import CoverOptions, RunOptions, read_cover_options
from .coverage_data import CoverageMap, FileCoverage
from .counters import CounterTable
from .errors import (
    ConfigError,
    CoverageError,
    CoverageSetupError,
    InstrumentationError,
    TestDiscoveryError,
    TestExecutionError,
    UnsupportedReportFormat,
)
from .hook import SourceFileSet, evict_cached_modules, hook_loader
from .instrument import Instrumenter
from .reports import emit
from .runner import CoverageRunner, SuiteRunner, configure, current_state, run

__all__ = [
    "ConfigError",
    "CounterTable",
    "CoverOptions",
    "CoverageError",
    "CoverageMap",
    "CoverageRunner",
    "CoverageSetupError",
    "FileCoverage",
    "InstrumentationError",
    "Instrumenter",
    "RunOptions",
    "SourceFileSet",
    "SuiteRunner",
    "TestDiscoveryError",
    "TestExecutionError",
    "UnsupportedReportFormat",
    "aggregate",
    "configure",
    "current_state",
    "emit",
    "evict_cached_modules",
    "hook_loader",
    "read_cover_options",
    "run",
]
