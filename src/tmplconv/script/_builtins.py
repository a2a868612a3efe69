"""Predeclared functions and the method allow-list for scripts."""

import math
import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from tmplconv.exceptions import ScriptError
from tmplconv.script._values import Struct, script_repr, script_str, type_name
from tmplconv.utils import create_null_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tmplconv.script._interpreter import Interpreter

_STRING_METHODS = frozenset(
    {
        "capitalize",
        "count",
        "endswith",
        "find",
        "index",
        "isalnum",
        "isalpha",
        "isdigit",
        "islower",
        "isspace",
        "istitle",
        "isupper",
        "join",
        "lower",
        "lstrip",
        "partition",
        "removeprefix",
        "removesuffix",
        "replace",
        "rfind",
        "rindex",
        "rpartition",
        "rsplit",
        "rstrip",
        "split",
        "splitlines",
        "startswith",
        "strip",
        "title",
        "upper",
    }
)
_LIST_METHODS = frozenset({"append", "clear", "index", "insert", "pop", "remove"})
_DICT_METHODS = frozenset({"clear", "get", "pop", "popitem", "setdefault"})
_DICT_VIEWS = frozenset({"items", "keys", "values"})

_FORMAT_FIELD_RE = re.compile(r"\{\{|\}\}|\{([^{}!:]*)(?:!([rs]))?\}")


def _format(template: str, *args: object, **kwargs: object) -> str:
    """Starlark ``str.format``: positional, indexed and named fields only.

    Field names never reach attribute or item lookups on the arguments.
    """
    position = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal position
        token = match.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"
        field, conversion = match.group(1), match.group(2)
        if field == "":
            value = args[position]
            position += 1
        elif field.isdigit():
            value = args[int(field)]
        else:
            value = kwargs[field]
        return script_repr(value) if conversion == "r" else script_str(value)

    return _FORMAT_FIELD_RE.sub(replace, template)


def get_method(interp: "Interpreter", value: object, name: str) -> Callable[..., object] | None:  # noqa: UP037
    """Return an allowed bound method of a str, list or dict, or None."""
    match value:
        case str():
            if name == "format":
                return lambda *args, **kwargs: _format(value, *args, **kwargs)
            if name == "elems":
                return lambda: list(value)
            if name in _STRING_METHODS:
                return getattr(value, name)
        case list():
            if name == "extend":
                return lambda iterable: value.extend(list(interp.iterate(iterable)))
            if name in _LIST_METHODS:
                return getattr(value, name)
        case dict():
            if name in _DICT_VIEWS:
                view = getattr(value, name)
                return lambda: list(view())
            if name == "update":
                return lambda *args, **kwargs: value.update(_dict(interp, *args, **kwargs))
            if name in _DICT_METHODS:
                return getattr(value, name)
        case _:
            pass
    return None


def _dict(interp: "Interpreter", *args: object, **kwargs: object) -> dict[object, object]:  # noqa: UP037
    if len(args) > 1:
        msg = f"dict: got {len(args)} positional arguments, want at most 1"
        raise TypeError(msg)
    result: dict[object, object] = {}
    if args:
        source = args[0]
        if isinstance(source, dict):
            for key in interp.iterate(source):
                result[key] = source[key]
        else:
            for pair in interp.iterate(source):
                if not isinstance(pair, (list, tuple)) or len(pair) != 2:  # noqa: PLR2004
                    msg = f"dict: element is not a pair: {script_repr(pair)}"
                    raise TypeError(msg)
                result[pair[0]] = pair[1]
    result.update(kwargs)
    return result


def create_builtins(  # noqa: C901, PLR0915
    interp: "Interpreter",  # noqa: UP037
    logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
) -> dict[str, object]:
    """Build the predeclared names for one interpreter.

    Built-ins that consume iterables charge steps through the interpreter.
    """
    log = logger if logger is not None else create_null_logger()

    def wrap(function: object) -> Callable[[object], object] | None:
        if function is None:
            return None
        return lambda item: interp.invoke(function, [item], {})

    def len_(value: object) -> int:
        if isinstance(value, (str, list, tuple, dict, range)):
            return len(value)
        msg = f"len: value of type {type_name(value)} has no len"
        raise TypeError(msg)

    def range_(*args: object) -> range:
        if not 1 <= len(args) <= 3 or not all(  # noqa: PLR2004
            isinstance(a, int) and not isinstance(a, bool) for a in args
        ):
            msg = "range: want 1 to 3 int arguments"
            raise TypeError(msg)
        return range(*(int(a) for a in args))  # pyright: ignore[reportArgumentType]

    def int_(value: object = 0, base: int | None = None) -> int:
        if isinstance(value, str):
            return int(value.strip(), 10 if base is None else base)
        if base is not None:
            msg = "int: can't convert non-string with explicit base"
            raise TypeError(msg)
        if isinstance(value, float):
            if not math.isfinite(value):
                msg = f"int: cannot convert {value} to int"
                raise ValueError(msg)
            return int(value)
        if isinstance(value, int):
            return int(value)
        msg = f"int: cannot convert {type_name(value)} to int"
        raise TypeError(msg)

    def float_(value: object = 0.0) -> float:
        if isinstance(value, (int, float, str)):
            return float(value)
        msg = f"float: cannot convert {type_name(value)} to float"
        raise TypeError(msg)

    def sorted_(iterable: object, *, key: object = None, reverse: object = False) -> list[object]:
        items = list(interp.iterate(iterable))
        interp.tick(len(items))
        return sorted(items, key=wrap(key), reverse=bool(reverse))  # pyright: ignore[reportCallIssue,reportArgumentType]

    def reversed_(sequence: object) -> list[object]:
        items = list(interp.iterate(sequence))
        items.reverse()
        return items

    def enumerate_(iterable: object, start: int = 0) -> list[tuple[int, object]]:
        return [(i + start, item) for i, item in enumerate(interp.iterate(iterable))]

    def zip_(*iterables: object) -> list[tuple[object, ...]]:
        columns = [list(interp.iterate(it)) for it in iterables]
        return list(zip(*columns, strict=False))

    def extreme(choose: Callable[..., object], label: str) -> Callable[..., object]:
        def select(*args: object, key: object = None) -> object:
            items = list(interp.iterate(args[0])) if len(args) == 1 else list(args)
            if not items:
                msg = f"{label}: empty sequence"
                raise ValueError(msg)
            return choose(items, key=wrap(key))

        return select

    def any_(iterable: object) -> bool:
        return any(bool(item) for item in interp.iterate(iterable))

    def all_(iterable: object) -> bool:
        return all(bool(item) for item in interp.iterate(iterable))

    def abs_(value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return abs(value)
        msg = f"abs: got {type_name(value)}, want int or float"
        raise TypeError(msg)

    def hasattr_(value: object, name: object) -> bool:
        if not isinstance(name, str):
            msg = "hasattr: attribute name must be a string"
            raise TypeError(msg)
        if isinstance(value, Struct):
            return value.has(name)
        return get_method(interp, value, name) is not None

    def getattr_(value: object, name: object, *default: object) -> object:
        if not isinstance(name, str):
            msg = "getattr: attribute name must be a string"
            raise TypeError(msg)
        try:
            return interp.get_attribute(value, name)
        except AttributeError:
            if default:
                return default[0]
            raise

    def print_(*args: object, sep: str = " ") -> None:
        log.debug("script_print", message=sep.join(script_str(a) for a in args), line=interp.line)

    def fail(*args: object, sep: str = " ") -> None:
        msg = "fail: " + sep.join(script_str(a) for a in args)
        raise ScriptError(msg, line=interp.line)

    def struct(**kwargs: object) -> Struct:
        return Struct("struct", kwargs)

    def load(*args: object, **kwargs: object) -> None:
        msg = f"line {interp.line}: load statements are not supported"
        raise ScriptError(msg, line=interp.line)

    return {
        "abs": abs_,
        "all": all_,
        "any": any_,
        "bool": lambda value=False: bool(value),
        "dict": lambda *args, **kwargs: _dict(interp, *args, **kwargs),
        "enumerate": enumerate_,
        "fail": fail,
        "float": float_,
        "getattr": getattr_,
        "hasattr": hasattr_,
        "int": int_,
        "len": len_,
        "list": lambda iterable=(): list(interp.iterate(iterable)),
        "load": load,
        "max": extreme(max, "max"),
        "min": extreme(min, "min"),
        "print": print_,
        "range": range_,
        "repr": script_repr,
        "reversed": reversed_,
        "sorted": sorted_,
        "str": lambda value="": script_str(value),
        "struct": struct,
        "tuple": lambda iterable=(): tuple(interp.iterate(iterable)),
        "type": type_name,
        "zip": zip_,
    }
