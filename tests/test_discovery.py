from __future__ import annotations

import pytest

from pkg.testcover import TestDiscoveryError
from pkg.testcover.discovery import discover_source_files, discover_test_files, is_ignored


def _touch(root, *names):
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")


def test_discover_source_files_returns_sorted_absolute_paths(tmp_path):
    _touch(tmp_path, "b.py", "a.py", "pkg/c.py", "notes.txt")
    found = discover_source_files(tmp_path)
    assert found == sorted(str(tmp_path / name) for name in ("a.py", "b.py", "pkg/c.py"))


def test_ignore_patterns_match_relative_paths(tmp_path):
    _touch(tmp_path, "a.py", "vendor/lib.py", "pkg/vendor/lib.py", "pkg/keep.py")
    found = discover_source_files(tmp_path, ignore_patterns=["**/vendor/*"])
    assert found == [str(tmp_path / "a.py"), str(tmp_path / "pkg" / "keep.py")]


def test_is_ignored_double_star_matches_top_level():
    assert is_ignored("setup.py", ["**/setup.py"])
    assert is_ignored("pkg/setup.py", ["**/setup.py"])
    assert not is_ignored("pkg/main.py", ["**/setup.py"])


def test_custom_source_pattern(tmp_path):
    _touch(tmp_path, "a.py", "b.pyw")
    assert discover_source_files(tmp_path, "*.pyw") == [str(tmp_path / "b.pyw")]


def test_discover_test_files_default_patterns(tmp_path):
    _touch(tmp_path, "test_a.py", "b_test.py", "unit/test_c.py", "helper.py")
    found = discover_test_files(tmp_path)
    assert found == sorted(str(tmp_path / name) for name in ("test_a.py", "b_test.py", "unit/test_c.py"))


def test_missing_root_raises(tmp_path):
    with pytest.raises(TestDiscoveryError):
        discover_source_files(tmp_path / "missing")
