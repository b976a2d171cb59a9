"""Process-wide counter tables, one per coverage run."""

from __future__ import annotations

import itertools
import time
from typing import Iterator, Mapping

from .coverage_data import FileCoverage

_TABLES: dict[str, "CounterTable"] = {}
_SEQUENCE = itertools.count()


def new_coverage_variable() -> str:
    """Return a module-global name no other run in this process uses."""
    while True:
        key = f"__cov_{time.time_ns()}_{next(_SEQUENCE)}__"
        if key not in _TABLES:
            return key


class CounterTable(Mapping[str, FileCoverage]):
    """Live FileCoverage records written by instrumented modules.

    Keys are normalized source paths. Tables are registered under their
    coverage variable and live until the interpreter exits.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        self._files: dict[str, FileCoverage] = {}

    @classmethod
    def create(cls) -> "CounterTable":
        table = cls(new_coverage_variable())
        _TABLES[table.key] = table
        return table

    def __getitem__(self, path: str) -> FileCoverage:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def record_for(self, path: str, template: FileCoverage) -> FileCoverage:
        """Return the record for `path`, seeding it from `template` on first use."""
        record = self._files.get(path)
        if record is None or not _same_layout(record, template):
            record = template.copy()
            record.path = path
            record.reset_counters()
            self._files[path] = record
        return record


def _same_layout(record: FileCoverage, template: FileCoverage) -> bool:
    # A file edited between two imports gets a fresh record.
    return (
        record.statement_map == template.statement_map
        and record.fn_map == template.fn_map
        and record.branch_map == template.branch_map
    )


def counter_table(key: str) -> CounterTable | None:
    return _TABLES.get(key)
