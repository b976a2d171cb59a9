"""Source Map v3 loading and translation of coverage back to pre-build sources."""

from __future__ import annotations

import json
import os
from bisect import bisect_right
from typing import Any

from .coverage_data import BranchMeta, CoverageMap, FileCoverage, FunctionMeta, Position, Range

BASE64_DIGITS = {char: idx for idx, char in enumerate("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/")}

OriginalPosition = tuple[str, int, int]


def decode_vlq(segment: str) -> list[int]:
    """Decode one base64 VLQ mapping segment into its signed integer fields."""
    values: list[int] = []
    value = 0
    shift = 0
    for char in segment:
        digit = BASE64_DIGITS.get(char)
        if digit is None:
            raise ValueError(f"invalid base64 VLQ character: {char!r}")
        value += (digit & 31) << shift
        if digit & 32:
            shift += 5
            continue
        negative = value & 1
        value >>= 1
        values.append(-value if negative else value)
        value = 0
        shift = 0
    if shift:
        raise ValueError(f"truncated VLQ segment: {segment!r}")
    return values


def _resolve_sources(raw: dict[str, Any], map_path: str) -> list[str]:
    base = os.path.dirname(os.path.abspath(map_path))
    root = raw.get("sourceRoot") or ""
    sources = []
    for source in raw["sources"]:
        candidate = os.path.join(root, str(source))
        if not os.path.isabs(candidate):
            candidate = os.path.join(base, candidate)
        sources.append(os.path.normpath(candidate))
    return sources


def load_source_map(path: str) -> dict[str, Any] | None:
    """Read the `<path>.map` companion of a generated file.

    Returns None when there is no usable map; sources in the returned map are
    absolute so it no longer depends on where it was read from.
    """
    map_path = f"{path}.map"
    try:
        with open(map_path, "r", encoding="utf-8") as stream:
            raw = json.load(stream)
    except (OSError, ValueError):
        return None
    if not isinstance(raw, dict):
        return None
    if not isinstance(raw.get("mappings"), str) or not isinstance(raw.get("sources"), list):
        return None

    resolved = dict(raw)
    resolved["sources"] = _resolve_sources(raw, map_path)
    resolved.pop("sourceRoot", None)
    return resolved


class SourceMap:
    """Lookup table from generated (line, column) to original source positions.

    Lines are 1-based and columns 0-based on both sides, as in FileCoverage.
    """

    def __init__(self, raw: dict[str, Any]) -> None:
        if raw.get("version", 3) != 3:
            raise ValueError(f"unsupported source map version: {raw.get('version')!r}")
        self.sources = [str(source) for source in raw.get("sources", [])]
        self._lines: list[list[tuple[int, int, int, int]]] = []
        self._columns: list[list[int]] = []
        self._decode(str(raw.get("mappings", "")))

    def _decode(self, mappings: str) -> None:
        source = original_line = original_column = 0
        for line in mappings.split(";"):
            generated_column = 0
            segments = []
            for segment in line.split(","):
                if not segment:
                    continue
                fields = decode_vlq(segment)
                generated_column += fields[0]
                if len(fields) < 4:
                    continue
                source += fields[1]
                original_line += fields[2]
                original_column += fields[3]
                if not 0 <= source < len(self.sources):
                    raise ValueError(f"mapping refers to unknown source index {source}")
                segments.append((generated_column, source, original_line, original_column))
            segments.sort()
            self._lines.append(segments)
            self._columns.append([item[0] for item in segments])

    def original_position(self, line: int, column: int) -> OriginalPosition | None:
        idx = line - 1
        if idx < 0 or idx >= len(self._lines) or not self._lines[idx]:
            return None
        segments = self._lines[idx]
        pos = bisect_right(self._columns[idx], column) - 1
        # Fall back to the first mapping on the line when nothing precedes the column.
        _, source, original_line, original_column = segments[max(pos, 0)]
        return self.sources[source], original_line + 1, original_column


def _map_range(source_map: SourceMap, loc: Range) -> tuple[str, Range] | None:
    start = source_map.original_position(loc.start.line, loc.start.column)
    end = source_map.original_position(loc.end.line, max(loc.end.column - 1, 0))
    if start is None or end is None or start[0] != end[0]:
        return None
    return start[0], Range(Position(start[1], start[2]), Position(end[1], end[2] + 1))


def _translate(file_coverage: FileCoverage, source_map: SourceMap) -> list[FileCoverage]:
    mapped: dict[str, FileCoverage] = {}

    def target(source: str) -> FileCoverage:
        if source not in mapped:
            mapped[source] = FileCoverage(path=source)
        return mapped[source]

    for loc, hits in zip(file_coverage.statement_map, file_coverage.s):
        result = _map_range(source_map, loc)
        if result is None:
            continue
        record = target(result[0])
        record.s[record.add_statement(result[1])] = hits

    for meta, hits in zip(file_coverage.fn_map, file_coverage.f):
        result = _map_range(source_map, meta.loc)
        if result is None:
            continue
        decl = _map_range(source_map, meta.decl)
        decl_range = decl[1] if decl is not None and decl[0] == result[0] else result[1]
        record = target(result[0])
        function = FunctionMeta(meta.name, decl_range, result[1], result[1].start.line)
        record.f[record.add_function(function)] = hits

    for meta, counts in zip(file_coverage.branch_map, file_coverage.b):
        loc = _map_range(source_map, meta.loc)
        locations = [_map_range(source_map, location) for location in meta.locations]
        if loc is None or any(item is None or item[0] != loc[0] for item in locations):
            continue
        record = target(loc[0])
        branch = BranchMeta(meta.type, loc[1], tuple(item[1] for item in locations), loc[1].start.line)
        idx = record.add_branch(branch)
        record.b[idx] = list(counts)

    # Collapse constructs that landed on the same original location.
    translated = []
    for source, record in mapped.items():
        merged = FileCoverage(path=source)
        merged.merge(record)
        translated.append(merged)
    return translated


def transform_coverage(coverage_map: CoverageMap) -> CoverageMap:
    """Re-key records that carry a source map onto their original sources."""
    result = CoverageMap()
    for file_coverage in coverage_map.file_coverages():
        if not file_coverage.input_source_map:
            result.add(file_coverage)
            continue
        try:
            source_map = SourceMap(file_coverage.input_source_map)
        except (KeyError, TypeError, ValueError):
            result.add(file_coverage)
            continue
        for translated in _translate(file_coverage, source_map):
            result.add(translated)
    return result
