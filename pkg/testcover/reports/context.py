"""Shared state handed to each report renderer."""

from __future__ import annotations

import importlib.util
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..coverage_data import CoverageMap, FileCoverage
from .summary import CoverageSummary, summarize, summarize_all


@dataclass(frozen=True)
class FileEntry:
    """One leaf of the flat report tree."""

    path: str
    name: str
    coverage: FileCoverage
    summary: CoverageSummary


@dataclass
class ReportContext:
    """Output directory plus a flat tree of every file in the coverage map.

    All writes are blocking so renderers are safe to call from exit handlers.
    """

    dir: Path
    coverage_map: CoverageMap
    root: str = field(init=False)
    entries: list[FileEntry] = field(init=False)
    total: CoverageSummary = field(init=False)

    def __post_init__(self) -> None:
        self.dir = Path(self.dir)
        files = self.coverage_map.files()
        if files:
            self.root = os.path.commonpath([os.path.dirname(path) for path in files])
        else:
            self.root = ""
        self.entries = [
            FileEntry(
                path=path,
                name=self.relative_name(path),
                coverage=self.coverage_map[path],
                summary=summarize(self.coverage_map[path]),
            )
            for path in files
        ]
        self.total = summarize_all(entry.coverage for entry in self.entries)

    def relative_name(self, path: str) -> str:
        if not self.root:
            return Path(path).as_posix()
        return Path(os.path.relpath(path, self.root)).as_posix()

    def write_file(self, relative: str, content: str) -> Path:
        target = self.dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def read_source(self, path: str) -> str | None:
        try:
            data = Path(path).read_bytes()
        except OSError:
            return None
        return importlib.util.decode_source(data)
