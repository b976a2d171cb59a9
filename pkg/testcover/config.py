"""Coverage and run options read from the coverage config file."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .discovery import DEFAULT_SOURCE_PATTERN, DEFAULT_TEST_PATTERNS
from .errors import ConfigError
from .reports import DEFAULT_REPORTS, SUPPORTED_REPORT_FORMATS

DEFAULT_COVER_CONFIG = "coverconfig.json"
DEFAULT_COVERAGE_DIR = "coverage"
YAML_SUFFIXES = {".yml", ".yaml"}


def _coerce_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a boolean")
    return value


def _coerce_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string")
    normalized = value.strip()
    if not normalized:
        raise ConfigError(f"{field_name} cannot be empty")
    return normalized


def _coerce_optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _coerce_str(value, field_name)


def _coerce_patterns(value: Any, field_name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{field_name} must be an array of strings")
    patterns = [_coerce_str(item, f"{field_name} item") for item in value]
    return tuple(dict.fromkeys(patterns))


def _coerce_reports(value: Any) -> tuple[str, ...]:
    # Anything but a list means "use the default report".
    if not isinstance(value, (list, tuple)) or not value:
        return DEFAULT_REPORTS
    reports = []
    for item in value:
        report = _coerce_str(item, "reports item")
        if report not in SUPPORTED_REPORT_FORMATS:
            raise ConfigError(
                f"reports item {report!r} is not supported; expected one of {sorted(SUPPORTED_REPORT_FORMATS)}"
            )
        reports.append(report)
    return tuple(dict.fromkeys(reports))


@dataclass(frozen=True)
class CoverOptions:
    """Contents of the coverage config file."""

    enabled: bool = False
    relative_source_path: str | None = None
    ignore_patterns: tuple[str, ...] = ()
    relative_coverage_dir: str = DEFAULT_COVERAGE_DIR
    include_pid: bool = False
    reports: tuple[str, ...] = DEFAULT_REPORTS
    source_pattern: str = DEFAULT_SOURCE_PATTERN

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "CoverOptions":
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ConfigError("coverage config must be an object")
        # Only a literal `true` arms coverage; otherwise nothing else is read.
        if raw.get("enabled") is not True:
            return cls()

        coverage_dir = _coerce_optional_str(
            raw.get("relativeCoverageDir", raw.get("relative_coverage_dir")),
            "relativeCoverageDir",
        )
        source_pattern = _coerce_optional_str(
            raw.get("sourcePattern", raw.get("source_pattern")),
            "sourcePattern",
        )
        return cls(
            enabled=True,
            relative_source_path=_coerce_optional_str(
                raw.get("relativeSourcePath", raw.get("relative_source_path")),
                "relativeSourcePath",
            ),
            ignore_patterns=_coerce_patterns(
                raw.get("ignorePatterns", raw.get("ignore_patterns")),
                "ignorePatterns",
            ),
            relative_coverage_dir=coverage_dir or DEFAULT_COVERAGE_DIR,
            include_pid=_coerce_bool(raw.get("includePid", raw.get("include_pid")), "includePid", False),
            reports=_coerce_reports(raw.get("reports")),
            source_pattern=source_pattern or DEFAULT_SOURCE_PATTERN,
        )


@dataclass(frozen=True)
class RunOptions:
    """Options used to find the coverage config and the test files."""

    cover_config: str = DEFAULT_COVER_CONFIG
    test_patterns: tuple[str, ...] = DEFAULT_TEST_PATTERNS

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None = None) -> "RunOptions":
        if raw is None:
            return cls()
        if isinstance(raw, RunOptions):
            return raw
        if not isinstance(raw, dict):
            raise ConfigError("run options must be an object")
        cover_config = _coerce_optional_str(raw.get("coverConfig", raw.get("cover_config")), "coverConfig")
        return cls(
            cover_config=cover_config or DEFAULT_COVER_CONFIG,
            test_patterns=_coerce_patterns(
                raw.get("testPatterns", raw.get("test_patterns")),
                "testPatterns",
                DEFAULT_TEST_PATTERNS,
            ),
        )


def _load_raw(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"unable to read coverage config {path}: {exc}") from exc
    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {path}: {exc}") from exc


def read_cover_options(tests_root: str | Path, run_options: RunOptions | None = None) -> CoverOptions | None:
    """Load the coverage config next to the tests.

    A missing file means coverage was not requested and returns None.
    """
    options = run_options or RunOptions()
    path = Path(tests_root) / options.cover_config
    if not path.is_file():
        return None
    return CoverOptions.from_dict(_load_raw(path))
