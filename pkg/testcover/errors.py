"""Error taxonomy for the coverage runner."""

from __future__ import annotations


class CoverageError(RuntimeError):
    """Base class for every failure raised by testcover."""


class ConfigError(CoverageError):
    """The coverage config file is unreadable or holds invalid values."""


class CoverageSetupError(CoverageError):
    """Coverage was requested but could not be armed."""


class TestDiscoveryError(CoverageError):
    """Test or source files could not be enumerated."""

    __test__ = False


class TestExecutionError(CoverageError):
    """The test engine could not register or run the test files."""

    __test__ = False


class InstrumentationError(CoverageError):
    """A source file could not be parsed for instrumentation."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"unable to instrument {path}: {reason}")
        self.path = path


class UnsupportedReportFormat(CoverageError, ValueError):
    """A report identifier outside the supported set was requested."""

    def __init__(self, report_type: object) -> None:
        super().__init__(f"unsupported report type: {report_type!r}")
        self.report_type = report_type
