"""Script value types and conversions between script and host values."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from tmplconv.exceptions import ScriptError

if TYPE_CHECKING:
    import ast

    from tmplconv.script._interpreter import Scope


class Struct:
    """Immutable record with attribute access, like Starlark's ``struct``.

    Example:
        >>> s = Struct("repo", {"name": "hello-world"})
        >>> s.get("name")
        'hello-world'
    """

    __slots__ = ("_fields", "_name")

    def __init__(self, name: str, fields: Mapping[str, object]) -> None:
        self._name = name
        self._fields = dict(fields)

    @property
    def name(self) -> str:
        return self._name

    def get(self, attr: str) -> object:
        """Return a field value.

        Raises:
            AttributeError: If the struct has no such field.
        """
        try:
            return self._fields[attr]
        except KeyError:
            msg = f"{self._name} struct has no .{attr} attribute"
            raise AttributeError(msg) from None

    def has(self, attr: str) -> bool:
        return attr in self._fields

    def fields(self) -> dict[str, object]:
        return dict(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Struct):
            return NotImplemented
        return self._fields == other._fields

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        return script_repr(self)


@dataclass(slots=True, eq=False)
class ScriptFunction:
    """A function defined by ``def`` or ``lambda`` in a script.

    Attributes:
        name: Function name (``lambda`` for lambdas).
        params: Positional-or-keyword parameter names.
        defaults: Default values keyed by parameter name.
        vararg: Name of the ``*args`` parameter, if any.
        kwonly: Keyword-only parameter names.
        kwarg: Name of the ``**kwargs`` parameter, if any.
        body: Statements of a ``def``, or the single expression of a lambda.
        closure: Scope the function was defined in.
        line: Line of the definition.
    """

    name: str
    params: list[str]
    defaults: dict[str, object]
    vararg: str | None
    kwonly: list[str]
    kwarg: str | None
    body: "list[ast.stmt] | ast.expr"  # noqa: UP037
    closure: "Scope"  # noqa: UP037
    line: int = 0
    is_lambda: bool = field(default=False)

    def __repr__(self) -> str:
        return f"<function {self.name}>"


def type_name(value: object) -> str:
    """Starlark type name of a value."""
    match value:
        case None:
            return "NoneType"
        case bool():
            return "bool"
        case int():
            return "int"
        case float():
            return "float"
        case str():
            return "string"
        case list():
            return "list"
        case tuple():
            return "tuple"
        case dict():
            return "dict"
        case range():
            return "range"
        case Struct():
            return "struct"
        case ScriptFunction():
            return "function"
        case _ if callable(value):
            return "builtin_function_or_method"
        case _:
            return type(value).__name__


def script_repr(value: object) -> str:
    """Starlark-style representation of a value."""
    match value:
        case None:
            return "None"
        case bool():
            return "True" if value else "False"
        case str():
            return _quote(value)
        case list():
            return "[" + ", ".join(script_repr(v) for v in value) + "]"
        case tuple():
            if len(value) == 1:
                return f"({script_repr(value[0])},)"
            return "(" + ", ".join(script_repr(v) for v in value) + ")"
        case dict():
            items = (f"{script_repr(k)}: {script_repr(v)}" for k, v in value.items())
            return "{" + ", ".join(items) + "}"
        case Struct():
            items = (f"{k} = {script_repr(v)}" for k, v in value.fields().items())
            return "struct(" + ", ".join(items) + ")"
        case _:
            return repr(value)


def script_str(value: object) -> str:
    """Starlark ``str()``: strings are returned unquoted."""
    if isinstance(value, str):
        return value
    return script_repr(value)


def _quote(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def to_script(value: object) -> object:
    """Convert host data (decoded YAML) to script values.

    Mappings become dicts, sequences become lists, and dates become ISO
    strings. Scalars pass through.
    """
    match value:
        case None | bool() | int() | float() | str():
            return value
        case datetime() | date():
            return value.isoformat()
        case Mapping():
            return {str(k): to_script(v) for k, v in value.items()}
        case list() | tuple():
            return [to_script(v) for v in value]
        case _:
            return str(value)


def to_plain(value: object) -> object:
    """Convert a script value into JSON-encodable host data.

    Raises:
        ScriptError: If the value contains functions, non-string dict keys, or
            non-finite floats.
    """
    match value:
        case None | bool() | int() | str():
            return value
        case float():
            if not math.isfinite(value):
                msg = f"cannot encode non-finite float {value} as JSON"
                raise ScriptError(msg)
            return value
        case list() | tuple():
            return [to_plain(v) for v in value]
        case dict():
            result: dict[str, object] = {}
            for k, v in value.items():
                if not isinstance(k, str):
                    msg = f"cannot encode dict with {type_name(k)} key as JSON"
                    raise ScriptError(msg)
                result[k] = to_plain(v)
            return result
        case Struct():
            return {k: to_plain(v) for k, v in value.fields().items()}
        case _:
            msg = f"cannot encode {type_name(value)} as JSON"
            raise ScriptError(msg)
