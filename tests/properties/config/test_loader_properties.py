# pyright: reportAny=false
from typing import Any

from hypothesis import given, strategies as st

from tmplconv.config import deep_merge

keys = st.text(alphabet="abcdef", min_size=1, max_size=3)
scalars = st.one_of(st.integers(), st.booleans(), st.text(max_size=5))
tables = st.recursive(
    st.dictionaries(keys, scalars, max_size=4),
    lambda children: st.dictionaries(keys, st.one_of(scalars, children), max_size=4),
    max_leaves=12,
)


@given(base=tables)
def test_merge_with_empty_is_identity(base: dict[str, Any]) -> None:
    assert deep_merge(base, {}) == base
    assert deep_merge({}, base) == base


@given(base=tables, override=tables)
def test_override_keys_win(base: dict[str, Any], override: dict[str, Any]) -> None:
    result = deep_merge(base, override)

    for key, value in override.items():
        if not (isinstance(value, dict) and isinstance(base.get(key), dict)):
            assert result[key] == value


@given(base=tables, override=tables)
def test_base_keys_survive(base: dict[str, Any], override: dict[str, Any]) -> None:
    result = deep_merge(base, override)

    assert set(base) | set(override) == set(result)


@given(base=tables)
def test_merge_with_self_is_identity(base: dict[str, Any]) -> None:
    assert deep_merge(base, base) == base
