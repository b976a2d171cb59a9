from __future__ import annotations

import json

import pytest

from pkg.testcover import ConfigError, CoverOptions, RunOptions, read_cover_options


def test_cover_options_defaults():
    options = CoverOptions.from_dict({})
    assert options.enabled is False
    assert options.relative_source_path is None
    assert options.relative_coverage_dir == "coverage"
    assert options.include_pid is False
    assert options.reports == ("lcovonly",)
    assert options.source_pattern == "**/*.py"


def test_cover_options_camel_and_snake_case():
    camel = CoverOptions.from_dict(
        {
            "enabled": True,
            "relativeSourcePath": "../src",
            "ignorePatterns": ["**/vendor/*", "**/vendor/*"],
            "relativeCoverageDir": "out",
            "includePid": True,
            "reports": ["html", "lcovonly"],
        }
    )
    snake = CoverOptions.from_dict(
        {
            "enabled": True,
            "relative_source_path": "../src",
            "ignore_patterns": ["**/vendor/*"],
            "relative_coverage_dir": "out",
            "include_pid": True,
            "reports": ["html", "lcovonly"],
        }
    )
    assert camel == snake
    assert camel.ignore_patterns == ("**/vendor/*",)


@pytest.mark.parametrize("reports", ["html", None, [], {"html": True}])
def test_non_list_reports_fall_back_to_default(reports):
    assert CoverOptions.from_dict({"enabled": True, "reports": reports}).reports == ("lcovonly",)


def test_unknown_report_is_rejected():
    with pytest.raises(ConfigError, match="not supported"):
        CoverOptions.from_dict({"enabled": True, "reports": ["lcovonly", "cobertura"]})


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"enabled": True, "includePid": "yes"}, "includePid must be a boolean"),
        ({"enabled": True, "relativeSourcePath": 3}, "relativeSourcePath must be a string"),
        ({"enabled": True, "relativeSourcePath": "  "}, "relativeSourcePath cannot be empty"),
        ({"enabled": True, "ignorePatterns": 5}, "ignorePatterns must be an array"),
        ([], "must be an object"),
    ],
)
def test_invalid_values_raise_config_error(raw, message):
    with pytest.raises(ConfigError, match=message):
        CoverOptions.from_dict(raw)


def test_run_options_from_dict():
    assert RunOptions.from_dict(None) == RunOptions()
    options = RunOptions.from_dict({"coverConfig": "cover.yml", "testPatterns": "**/check_*.py"})
    assert options.cover_config == "cover.yml"
    assert options.test_patterns == ("**/check_*.py",)
    assert RunOptions.from_dict(options) is options


def test_read_cover_options_missing_file_returns_none(tmp_path):
    assert read_cover_options(tmp_path) is None


def test_read_cover_options_json(tmp_path):
    (tmp_path / "coverconfig.json").write_text(
        json.dumps({"enabled": True, "relativeSourcePath": "src"}), encoding="utf-8"
    )
    options = read_cover_options(tmp_path)
    assert options.enabled is True
    assert options.relative_source_path == "src"


def test_read_cover_options_yaml(tmp_path):
    (tmp_path / "cover.yaml").write_text(
        "enabled: true\nrelativeSourcePath: src\nreports:\n  - html\n  - text-summary\n",
        encoding="utf-8",
    )
    options = read_cover_options(tmp_path, RunOptions(cover_config="cover.yaml"))
    assert options.reports == ("html", "text-summary")


def test_read_cover_options_malformed_file(tmp_path):
    (tmp_path / "coverconfig.json").write_text("{enabled: true", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid JSON"):
        read_cover_options(tmp_path)
    (tmp_path / "cover.yml").write_text("enabled: [true\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid YAML"):
        read_cover_options(tmp_path, RunOptions(cover_config="cover.yml"))


@pytest.mark.parametrize(
    "raw",
    [
        {"enabled": False, "reports": ["cobertura"]},
        {"enabled": False, "relativeSourcePath": 3, "ignorePatterns": 5},
        {"enabled": "true", "reports": ["cobertura"]},
        {"reports": ["cobertura"]},
    ],
)
def test_disabled_config_skips_validation_of_other_fields(raw):
    assert CoverOptions.from_dict(raw) == CoverOptions()
