"""Glob-based enumeration of source and test files."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable

from .errors import TestDiscoveryError

DEFAULT_SOURCE_PATTERN = "**/*.py"
DEFAULT_TEST_PATTERNS = ("**/test_*.py", "**/*_test.py")


def _matches(relative: str, pattern: str) -> bool:
    if fnmatchcase(relative, pattern):
        return True
    # `**/x` should also match `x` at the top of the tree.
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        if fnmatchcase(relative, pattern):
            return True
    return False


def is_ignored(relative: str, ignore_patterns: Iterable[str]) -> bool:
    return any(_matches(relative, pattern) for pattern in ignore_patterns)


def _glob(root: Path, patterns: Iterable[str], ignore_patterns: Iterable[str]) -> list[str]:
    if not root.is_dir():
        raise TestDiscoveryError(f"directory not found: {root}")
    ignore = tuple(ignore_patterns)
    found: set[str] = set()
    try:
        for pattern in patterns:
            for path in root.glob(pattern):
                if not path.is_file():
                    continue
                if is_ignored(path.relative_to(root).as_posix(), ignore):
                    continue
                found.add(str(path.absolute()))
    except (OSError, ValueError) as exc:
        raise TestDiscoveryError(f"unable to scan {root}: {exc}") from exc
    return sorted(found)


def discover_source_files(
    root: str | Path,
    pattern: str = DEFAULT_SOURCE_PATTERN,
    ignore_patterns: Iterable[str] = (),
) -> list[str]:
    """Absolute paths of coverable files under `root`, minus ignored ones."""
    return _glob(Path(root), (pattern,), ignore_patterns)


def discover_test_files(root: str | Path, patterns: Iterable[str] = DEFAULT_TEST_PATTERNS) -> list[str]:
    return _glob(Path(root), patterns, ())
