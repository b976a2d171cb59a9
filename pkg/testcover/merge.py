"""Combining the per-process snapshots written with `includePid`."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Iterable

from .coverage_data import CoverageMap
from .errors import CoverageError

SNAPSHOT_NAME = re.compile(r"^coverage(-\d+)?\.json$")


def find_snapshots(directory: str | Path) -> list[Path]:
    """`coverage.json` and `coverage-<pid>.json` files directly under `directory`."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(path for path in root.iterdir() if path.is_file() and SNAPSHOT_NAME.match(path.name))


def load_snapshot(path: str | Path) -> CoverageMap:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return CoverageMap.from_dict(raw)
    except OSError as exc:
        raise CoverageError(f"unable to read coverage snapshot {path}: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise CoverageError(f"invalid coverage snapshot {path}: {exc}") from exc


def merge_snapshots(paths: Iterable[str | Path]) -> CoverageMap:
    merged = CoverageMap()
    for path in paths:
        merged.merge(load_snapshot(path))
    return merged
