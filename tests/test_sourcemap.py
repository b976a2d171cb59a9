from __future__ import annotations

import json

import pytest

from pkg.testcover import CoverageMap, FileCoverage, Instrumenter
from pkg.testcover.sourcemap import SourceMap, decode_vlq, load_source_map, transform_coverage


def test_decode_vlq_handles_sign_and_continuation():
    assert decode_vlq("AAAA") == [0, 0, 0, 0]
    assert decode_vlq("AACA") == [0, 0, 1, 0]
    assert decode_vlq("D") == [-1]
    assert decode_vlq("gB") == [16]


def test_decode_vlq_rejects_bad_input():
    with pytest.raises(ValueError):
        decode_vlq("A*")
    with pytest.raises(ValueError):
        decode_vlq("g")


def test_original_position_uses_greatest_lower_bound():
    # Line 1: col 0 -> orig (1, 0); col 4 -> orig (1, 8). Line 2: col 0 -> orig (3, 0).
    source_map = SourceMap({"version": 3, "sources": ["/orig/a.src"], "mappings": "AAAA,IAAQ;AAER"})
    assert source_map.original_position(1, 0) == ("/orig/a.src", 1, 0)
    assert source_map.original_position(1, 6) == ("/orig/a.src", 1, 8)
    assert source_map.original_position(2, 3) == ("/orig/a.src", 3, 0)
    assert source_map.original_position(7, 0) is None


def test_unsupported_version_is_rejected():
    with pytest.raises(ValueError):
        SourceMap({"version": 2, "sources": [], "mappings": ""})


def test_load_source_map_resolves_sources(tmp_path):
    generated = tmp_path / "build" / "gen.py"
    generated.parent.mkdir()
    generated.write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "build" / "gen.py.map").write_text(
        json.dumps({"version": 3, "sourceRoot": "../src", "sources": ["gen.src"], "mappings": "AAAA"}),
        encoding="utf-8",
    )

    loaded = load_source_map(str(generated))
    assert loaded["sources"] == [str(tmp_path / "src" / "gen.src")]
    assert "sourceRoot" not in loaded


def test_load_source_map_ignores_missing_or_invalid(tmp_path):
    generated = tmp_path / "gen.py"
    assert load_source_map(str(generated)) is None
    (tmp_path / "gen.py.map").write_text("not json", encoding="utf-8")
    assert load_source_map(str(generated)) is None
    (tmp_path / "gen.py.map").write_text(json.dumps({"version": 3}), encoding="utf-8")
    assert load_source_map(str(generated)) is None


def test_transform_coverage_rekeys_to_original_source(tmp_path):
    original = str(tmp_path / "orig.src")
    source_map = {"version": 3, "sources": [original], "mappings": "AAAA;AACA;AACA"}
    inst = Instrumenter("__cov_map__")
    inst.instrument_tree("a = 1\nb = 2\nc = 3\n", "/build/gen.py", source_map)
    record = inst.file_coverage("/build/gen.py").copy()
    record.s[:] = [1, 0, 2]

    coverage_map = CoverageMap()
    coverage_map.add(record)
    coverage_map.add(FileCoverage(path="/build/plain.py"))
    result = transform_coverage(coverage_map)

    assert set(result.files()) == {"/build/plain.py", original}
    translated = result[original]
    assert translated.line_coverage() == {1: 1, 2: 0, 3: 2}
    assert translated.input_source_map is None


def test_transform_coverage_keeps_record_with_broken_map():
    record = FileCoverage(path="/build/gen.py", input_source_map={"version": 3, "sources": [], "mappings": "AAAA"})
    coverage_map = CoverageMap()
    coverage_map.add(record)
    assert transform_coverage(coverage_map).files() == ["/build/gen.py"]
