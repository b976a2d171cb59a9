from __future__ import annotations

import json

import pytest

from pkg.testcover import CounterTable, Instrumenter, InstrumentationError, SourceFileSet, aggregate
from pkg.testcover.aggregate import NO_COVERAGE_MESSAGE, zero_coverage
from pkg.testcover.hook import normalize_path

SOURCE = "def f():\n    return 1\n\nvalue = f()\n"


def _write(tmp_path, name, text=SOURCE):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return normalize_path(str(path))


def _loaded(table, inst, path):
    inst.instrument_tree(SOURCE, path)
    record = table.record_for(path, inst.file_coverage(path))
    record.s[:] = [1, 1, 1]
    record.f[:] = [1]
    return record


def test_no_counters_means_no_map(tmp_path, capsys):
    path = _write(tmp_path, "a.py")
    assert aggregate(CounterTable.create(), SourceFileSet([path])) is None
    assert aggregate(None, SourceFileSet([path])) is None
    assert NO_COVERAGE_MESSAGE in capsys.readouterr().err


def test_unloaded_files_get_zeroed_entries(tmp_path):
    loaded = _write(tmp_path, "a.py")
    unloaded = _write(tmp_path, "b.py")
    table = CounterTable.create()
    inst = Instrumenter(table.key)
    _loaded(table, inst, loaded)

    coverage_map = aggregate(table, SourceFileSet([loaded, unloaded]))

    assert coverage_map.files() == sorted([loaded, unloaded])
    assert any(coverage_map[loaded].s)
    zeroed = coverage_map[unloaded]
    assert len(zeroed.statement_map) == 3
    assert zeroed.s == [0, 0, 0]
    assert zeroed.f == [0]


def test_counters_outside_source_set_are_dropped(tmp_path):
    inside = _write(tmp_path, "a.py")
    outside = _write(tmp_path, "other.py")
    table = CounterTable.create()
    inst = Instrumenter(table.key)
    _loaded(table, inst, inside)
    _loaded(table, inst, outside)

    coverage_map = aggregate(table, SourceFileSet([inside]))
    assert coverage_map.files() == [inside]


def test_zero_coverage_leaves_discovery_metadata_untouched(tmp_path):
    path = _write(tmp_path, "a.py")
    inst = Instrumenter("__cov_zero__")
    record = zero_coverage(path, inst)
    inst.file_coverage(path).s[0] = 4
    assert record.s == [0, 0, 0]


def test_unparseable_unloaded_file_fails_loudly(tmp_path):
    loaded = _write(tmp_path, "a.py")
    broken = _write(tmp_path, "broken.py", "def broken(:\n")
    table = CounterTable.create()
    _loaded(table, Instrumenter(table.key), loaded)
    with pytest.raises(InstrumentationError):
        aggregate(table, SourceFileSet([loaded, broken]))


def test_source_maps_are_applied_to_unloaded_files(tmp_path):
    loaded = _write(tmp_path, "a.py")
    generated = _write(tmp_path, "gen.py", "x = 1\n")
    original = str(tmp_path / "gen.src")
    (tmp_path / "gen.py.map").write_text(
        json.dumps({"version": 3, "sources": ["gen.src"], "mappings": "AAAA"}), encoding="utf-8"
    )
    table = CounterTable.create()
    _loaded(table, Instrumenter(table.key), loaded)

    coverage_map = aggregate(table, SourceFileSet([loaded, generated]))
    assert original in coverage_map
    assert generated not in coverage_map
    assert coverage_map[original].s == [0]
