# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""TOML and environment configuration loading."""

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tmplconv.exceptions import ConfigLoadError

ENV_PREFIX = "TMPLCONV_"


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file is not valid TOML.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file {path}: {e}"
        raise ConfigLoadError(msg, path=path, line=e.lineno, column=e.colno) from e


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Copy nested dicts and lists so the result shares no containers."""
    if isinstance(value, dict):
        return {k: copy_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def deep_merge(
    base: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    override: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Merge ``override`` into ``base`` and return a new dictionary.

    Tables merge recursively; any other value in ``override`` replaces the
    one in ``base``. Neither input is modified.

    Example:
        >>> deep_merge({"script": {"a": 1, "b": 2}}, {"script": {"a": 5}})
        {'script': {'a': 5, 'b': 2}}
    """
    result: dict[str, Any] = {key: copy_value(value) for key, value in base.items()}  # pyright: ignore[reportExplicitAny]
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy_value(value)
    return result


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set ``value`` at a dotted key path, creating tables along the way.

    Example:
        >>> d = {}
        >>> set_nested_key(d, "script.step_limit", 100)
        >>> d
        {'script': {'step_limit': 100}}
    """
    *parents, leaf = key_path.split(".")
    current = d
    for part in parents:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[leaf] = value


def parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Infer the type of an environment variable value.

    ``true``/``false`` (any case) become bools, integers and decimals become
    numbers, JSON arrays and objects are decoded, and anything else stays a
    string.
    """
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect ``<prefix><SECTION>__<KEY>`` variables into a config dict.

    ``TMPLCONV_SCRIPT__STEP_LIMIT=100`` becomes
    ``{"script": {"step_limit": 100}}``. Variables without a section
    separator (such as ``TMPLCONV_DEBUG``) are not configuration keys and are
    skipped.
    """
    source = os.environ if environ is None else environ
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for key, value in source.items():
        if not key.startswith(prefix):
            continue
        config_key = key[len(prefix) :]
        if "__" not in config_key:
            continue
        config_path = config_key.replace("__", ".").lower()
        set_nested_key(result, config_path, parse_env_value(value))
    return result
