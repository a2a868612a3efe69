"""Quota-limited interpreter for the Starlark script dialect.

Basic usage:
    from tmplconv.script import Interpreter, Struct

    interp = Interpreter(step_limit=50_000)
    module = interp.exec_module(source, filename="plugin.star")
    result = interp.call(module["main"], Struct("context", {...}))
"""

from tmplconv.script._interpreter import DEFAULT_MAX_SEQUENCE, Interpreter, Scope
from tmplconv.script._values import (
    ScriptFunction,
    Struct,
    script_repr,
    script_str,
    to_plain,
    to_script,
    type_name,
)

__all__ = [
    "DEFAULT_MAX_SEQUENCE",
    "Interpreter",
    "Scope",
    "ScriptFunction",
    "Struct",
    "script_repr",
    "script_str",
    "to_plain",
    "to_script",
    "type_name",
]
