"""Per-file coverage records and the aggregated coverage map.

The JSON shape matches the istanbul `coverage.json` format so snapshots can be
fed to any tool that already understands it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass(frozen=True)
class Position:
    line: int
    column: int

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Position":
        return cls(line=int(raw["line"]), column=int(raw["column"]))


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Range":
        return cls(start=Position.from_dict(raw["start"]), end=Position.from_dict(raw["end"]))


@dataclass(frozen=True)
class FunctionMeta:
    """Static description of one counted function."""

    name: str
    decl: Range
    loc: Range
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "decl": self.decl.to_dict(), "loc": self.loc.to_dict(), "line": self.line}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "FunctionMeta":
        return cls(
            name=str(raw["name"]),
            decl=Range.from_dict(raw["decl"]),
            loc=Range.from_dict(raw["loc"]),
            line=int(raw["line"]),
        )


@dataclass(frozen=True)
class BranchMeta:
    """Static description of one branch point and its alternative paths."""

    type: str
    loc: Range
    locations: tuple[Range, ...]
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "loc": self.loc.to_dict(),
            "type": self.type,
            "locations": [location.to_dict() for location in self.locations],
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "BranchMeta":
        return cls(
            type=str(raw["type"]),
            loc=Range.from_dict(raw["loc"]),
            locations=tuple(Range.from_dict(item) for item in raw["locations"]),
            line=int(raw["line"]),
        )


def _indexed(items: dict[str, Any]) -> list[Any]:
    return [items[key] for key in sorted(items, key=int)]


@dataclass
class FileCoverage:
    """Static construct locations for one file plus the live hit counters.

    Instrumented modules hold a reference to this object and bump `s`, `f`
    and `b` directly, so counter lists must only ever be mutated in place.
    """

    path: str
    statement_map: list[Range] = field(default_factory=list)
    fn_map: list[FunctionMeta] = field(default_factory=list)
    branch_map: list[BranchMeta] = field(default_factory=list)
    s: list[int] = field(default_factory=list)
    f: list[int] = field(default_factory=list)
    b: list[list[int]] = field(default_factory=list)
    input_source_map: dict[str, Any] | None = None

    def add_statement(self, loc: Range) -> int:
        self.statement_map.append(loc)
        self.s.append(0)
        return len(self.statement_map) - 1

    def add_function(self, meta: FunctionMeta) -> int:
        self.fn_map.append(meta)
        self.f.append(0)
        return len(self.fn_map) - 1

    def add_branch(self, meta: BranchMeta) -> int:
        self.branch_map.append(meta)
        self.b.append([0] * len(meta.locations))
        return len(self.branch_map) - 1

    # Called from instrumented expressions; both return the wrapped value untouched.

    def branch_value(self, branch: int, path: int, value: Any) -> Any:
        self.b[branch][path] += 1
        return value

    def function_value(self, function: int, value: Any) -> Any:
        self.f[function] += 1
        return value

    def reset_counters(self) -> None:
        for idx in range(len(self.s)):
            self.s[idx] = 0
        for idx in range(len(self.f)):
            self.f[idx] = 0
        for counts in self.b:
            for idx in range(len(counts)):
                counts[idx] = 0

    def copy(self) -> "FileCoverage":
        return FileCoverage(
            path=self.path,
            statement_map=list(self.statement_map),
            fn_map=list(self.fn_map),
            branch_map=list(self.branch_map),
            s=list(self.s),
            f=list(self.f),
            b=[list(counts) for counts in self.b],
            input_source_map=self.input_source_map,
        )

    def merge(self, other: "FileCoverage") -> None:
        """Add the counters of `other` into this record.

        Constructs are matched by location; ones only `other` knows about are
        appended with their counts.
        """
        statements = {loc: idx for idx, loc in enumerate(self.statement_map)}
        for loc, hits in zip(other.statement_map, other.s):
            idx = statements.get(loc)
            if idx is None:
                idx = self.add_statement(loc)
                statements[loc] = idx
            self.s[idx] += hits

        functions = {(meta.name, meta.decl): idx for idx, meta in enumerate(self.fn_map)}
        for meta, hits in zip(other.fn_map, other.f):
            idx = functions.get((meta.name, meta.decl))
            if idx is None:
                idx = self.add_function(meta)
                functions[(meta.name, meta.decl)] = idx
            self.f[idx] += hits

        branches = {(meta.type, meta.loc): idx for idx, meta in enumerate(self.branch_map)}
        for meta, counts in zip(other.branch_map, other.b):
            idx = branches.get((meta.type, meta.loc))
            if idx is None or len(self.b[idx]) != len(counts):
                idx = self.add_branch(meta)
                branches[(meta.type, meta.loc)] = idx
            for path, hits in enumerate(counts):
                self.b[idx][path] += hits

    def line_coverage(self) -> dict[int, int]:
        """Hit count per source line, taking the busiest statement on each line."""
        lines: dict[int, int] = {}
        for loc, hits in zip(self.statement_map, self.s):
            line = loc.start.line
            previous = lines.get(line)
            if previous is None or previous < hits:
                lines[line] = hits
        return dict(sorted(lines.items()))

    def uncovered_lines(self) -> list[int]:
        return [line for line, hits in self.line_coverage().items() if hits == 0]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "statementMap": {str(idx): loc.to_dict() for idx, loc in enumerate(self.statement_map)},
            "fnMap": {str(idx): meta.to_dict() for idx, meta in enumerate(self.fn_map)},
            "branchMap": {str(idx): meta.to_dict() for idx, meta in enumerate(self.branch_map)},
            "s": {str(idx): hits for idx, hits in enumerate(self.s)},
            "f": {str(idx): hits for idx, hits in enumerate(self.f)},
            "b": {str(idx): list(counts) for idx, counts in enumerate(self.b)},
        }
        if self.input_source_map is not None:
            data["inputSourceMap"] = self.input_source_map
        return data

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "FileCoverage":
        if not isinstance(raw, dict):
            raise ValueError("file coverage must be an object")
        return cls(
            path=str(raw["path"]),
            statement_map=[Range.from_dict(item) for item in _indexed(raw.get("statementMap", {}))],
            fn_map=[FunctionMeta.from_dict(item) for item in _indexed(raw.get("fnMap", {}))],
            branch_map=[BranchMeta.from_dict(item) for item in _indexed(raw.get("branchMap", {}))],
            s=[int(hits) for hits in _indexed(raw.get("s", {}))],
            f=[int(hits) for hits in _indexed(raw.get("f", {}))],
            b=[[int(hits) for hits in counts] for counts in _indexed(raw.get("b", {}))],
            input_source_map=raw.get("inputSourceMap"),
        )


class CoverageMap:
    """All file records for a run, keyed by path and iterated in path order."""

    def __init__(self, files: dict[str, FileCoverage] | None = None) -> None:
        self._files: dict[str, FileCoverage] = dict(files or {})

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __getitem__(self, path: str) -> FileCoverage:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._files))

    def __len__(self) -> int:
        return len(self._files)

    def add(self, file_coverage: FileCoverage) -> None:
        existing = self._files.get(file_coverage.path)
        if existing is None:
            self._files[file_coverage.path] = file_coverage
        else:
            existing.merge(file_coverage)

    def merge(self, other: "CoverageMap") -> None:
        for path in other:
            self.add(other[path].copy())

    def files(self) -> list[str]:
        return list(self)

    def file_coverages(self) -> list[FileCoverage]:
        return [self._files[path] for path in self]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {path: self._files[path].to_dict() for path in self}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CoverageMap":
        if not isinstance(raw, dict):
            raise ValueError("coverage map must be an object keyed by file path")
        coverage_map = cls()
        for path, item in raw.items():
            file_coverage = FileCoverage.from_dict(item)
            if file_coverage.path != path:
                file_coverage.path = path
            coverage_map.add(file_coverage)
        return coverage_map
