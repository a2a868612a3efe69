# pyright: reportAny=false, reportUnknownArgumentType=false
"""Unit tests for TOML and environment configuration loading."""

import copy
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from tmplconv.config import (
    deep_merge,
    parse_env_value,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from tmplconv.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: "FakeFilesystem") -> None:
        content = """
[script]
step_limit = 1000

[logging]
level = "debug"
"""
        path = Path("/etc/tmplconv/config.toml")
        fs.create_file(path, contents=content)

        result = read_toml_file(path)

        assert result == {"script": {"step_limit": 1000}, "logging": {"level": "debug"}}

    def test_raises_file_not_found_for_missing_file(self, fs: "FakeFilesystem") -> None:
        with pytest.raises(FileNotFoundError):
            _ = read_toml_file(Path("/etc/tmplconv/missing.toml"))

    def test_invalid_toml_reports_location(self, fs: "FakeFilesystem") -> None:
        content = """[script]
step_limit = 1000

[invalid section
"""
        path = Path("/etc/tmplconv/bad.toml")
        fs.create_file(path, contents=content)

        with pytest.raises(ConfigLoadError) as exc_info:
            _ = read_toml_file(path)

        error = exc_info.value
        assert error.path == path
        assert error.line == 4
        assert error.column is not None
        assert error.__cause__ is not None


class TestDeepMerge:
    def test_nested_tables_merge(self) -> None:
        base = {"script": {"step_limit": 1, "size_limit": 2}, "logging": {"level": "info"}}

        result = deep_merge(base, {"script": {"step_limit": 10}})

        assert result == {
            "script": {"step_limit": 10, "size_limit": 2},
            "logging": {"level": "info"},
        }

    def test_non_table_replaces(self) -> None:
        result = deep_merge({"a": {"b": 1}}, {"a": [1, 2]})

        assert result == {"a": [1, 2]}

    def test_inputs_are_not_modified(self) -> None:
        base = {"a": {"b": [1]}}
        override = {"a": {"c": 2}}
        base_before = copy.deepcopy(base)
        override_before = copy.deepcopy(override)

        result = deep_merge(base, override)
        result["a"]["b"].append(2)

        assert base == base_before
        assert override == override_before


class TestSetNestedKey:
    def test_creates_intermediate_tables(self) -> None:
        d: dict[str, object] = {}

        set_nested_key(d, "a.b.c", 1)

        assert d == {"a": {"b": {"c": 1}}}

    def test_replaces_non_table_parent(self) -> None:
        d: dict[str, object] = {"a": 5}

        set_nested_key(d, "a.b", 1)

        assert d == {"a": {"b": 1}}


class TestParseEnvValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("-3", -3),
            ("1.5", 1.5),
            ("[1, 2]", [1, 2]),
            ('{"a": 1}', {"a": 1}),
            ("[not json", "[not json"),
            ("debug", "debug"),
            ("v1.2.3", "v1.2.3"),
        ],
    )
    def test_type_inference(self, raw: str, expected: object) -> None:
        assert parse_env_value(raw) == expected


class TestParseEnvVars:
    def test_collects_prefixed_sections(self) -> None:
        environ = {
            "TMPLCONV_SCRIPT__STEP_LIMIT": "100",
            "TMPLCONV_LOGGING__LEVEL": "debug",
            "OTHER_SCRIPT__STEP_LIMIT": "5",
        }

        result = parse_env_vars(environ=environ)

        assert result == {"script": {"step_limit": 100}, "logging": {"level": "debug"}}

    def test_skips_keys_without_section(self) -> None:
        assert parse_env_vars(environ={"TMPLCONV_DEBUG": "1"}) == {}

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TMPLCONV_DATALANG__MAX_STACK", "64")

        assert parse_env_vars()["datalang"] == {"max_stack": 64}
