# pyright: reportAny=false
"""Tree-walking evaluator for the Starlark script dialect.

Scripts are parsed with :mod:`ast` (Starlark syntax is a subset of Python's)
and evaluated node by node. Every executed statement, loop iteration, function
call and element consumed by a built-in counts as one step; exceeding the step
limit aborts evaluation with :class:`ScriptLimitError`. The only callables a
script can reach are its own functions, the predeclared built-ins and an
allow-list of ``str``/``list``/``dict`` methods, so host objects are never
exposed.
"""

import ast
import operator
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, TypeVar, cast

from tmplconv.exceptions import ScriptError, ScriptLimitError
from tmplconv.script._builtins import create_builtins, get_method
from tmplconv.script._values import ScriptFunction, Struct, type_name

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

# Longest string or list a single operation may produce
DEFAULT_MAX_SEQUENCE = 10_000_000

# Largest integer magnitude, in bits, an operation may produce
_MAX_INT_BITS = 65_536

T = TypeVar("T")

# Largest shift count accepted by << and >>
_MAX_SHIFT = 512

_BINARY_OPS: dict[type[ast.operator], Callable[[object, object], object]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.BitOr: operator.or_,
    ast.BitAnd: operator.and_,
    ast.BitXor: operator.xor,
    ast.LShift: operator.lshift,
    ast.RShift: operator.rshift,
}


def _repeat_weight(sequence: str | list[object] | tuple[object, ...]) -> int:
    """Size of one copy of a repeated sequence.

    Nested strings and containers count by their own length, so repeating a
    list that holds one large string weighs as much as repeating the string.
    """
    if isinstance(sequence, str):
        return len(sequence)
    return sum(
        max(len(item), 1) if isinstance(item, (str, list, tuple, dict)) else 1
        for item in sequence
    )


_COMPARE_OPS: dict[type[ast.cmpop], Callable[[object, object], object]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: operator.contains(b, a),
    ast.NotIn: lambda a, b: not operator.contains(b, a),
}

# Python exceptions that represent script-level faults
_SCRIPT_FAULTS = (
    TypeError,
    ValueError,
    KeyError,
    IndexError,
    ZeroDivisionError,
    AttributeError,
    OverflowError,
    RecursionError,
)


class _BreakSignal(Exception):  # noqa: N818
    pass


class _ContinueSignal(Exception):  # noqa: N818
    pass


class _ReturnSignal(Exception):  # noqa: N818
    def __init__(self, value: object) -> None:
        super().__init__()
        self.value: object = value


class Scope:
    """A lexical scope: function locals chained to their defining scope."""

    __slots__ = ("parent", "values")

    def __init__(self, parent: "Scope | None" = None) -> None:  # noqa: UP037
        self.parent: Scope | None = parent
        self.values: dict[str, object] = {}

    def lookup(self, name: str) -> object:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.values:
                return scope.values[name]
            scope = scope.parent
        raise KeyError(name)


class Interpreter:
    """Evaluates one script under a step budget.

    An interpreter is single-use: the step counter spans module execution and
    every later :meth:`call`, so the budget bounds the whole invocation.

    Example:
        >>> interp = Interpreter(step_limit=1000)
        >>> module = interp.exec_module("def main(ctx):\\n    return {'a': 1}\\n")
        >>> interp.call(module["main"], None)
        {'a': 1}
    """

    def __init__(
        self,
        *,
        step_limit: int = 0,
        max_sequence: int = DEFAULT_MAX_SEQUENCE,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
        predeclared: Mapping[str, object] | None = None,
    ) -> None:
        """Initialize the interpreter.

        Args:
            step_limit: Maximum number of steps; 0 disables the limit.
            max_sequence: Longest string or list a single operation may build.
            logger: Receives ``print()`` output as ``script_print`` events.
            predeclared: Extra global names visible to the script.
        """
        self._step_limit = step_limit
        self._max_sequence = max_sequence
        self._steps = 0
        self._line = 0
        self._filename = "<script>"
        self._call_stack: list[ScriptFunction] = []
        self._builtins: dict[str, object] = create_builtins(self, logger)
        if predeclared:
            self._builtins.update(predeclared)
        self._globals = Scope()

    @property
    def steps(self) -> int:
        """Steps executed so far."""
        return self._steps

    @property
    def line(self) -> int:
        """Line of the statement executed most recently."""
        return self._line

    # =========================================================================
    # Public API
    # =========================================================================

    def exec_module(self, source: str, filename: str = "<script>") -> dict[str, object]:
        """Parse and execute a script's top-level statements.

        Returns:
            The module globals.

        Raises:
            ScriptError: On syntax errors, unsupported syntax or runtime faults.
            ScriptLimitError: If a ceiling is exceeded.
        """
        self._filename = filename
        try:
            tree = ast.parse(source, filename=filename, mode="exec")
        except SyntaxError as e:
            msg = f"{filename}:{e.lineno}: syntax error: {e.msg}"
            raise ScriptError(msg, line=e.lineno) from e
        except (RecursionError, MemoryError) as e:
            msg = f"{filename}: script is nested too deeply"
            raise ScriptError(msg) from e

        self._guarded(lambda: self._exec_block(tree.body, self._globals))
        return dict(self._globals.values)

    def call(self, function: object, *args: object, **kwargs: object) -> object:
        """Call a script function or built-in with host arguments."""
        return self._guarded(lambda: self.invoke(function, list(args), kwargs))

    # =========================================================================
    # Budget
    # =========================================================================

    def tick(self, count: int = 1) -> None:
        """Charge ``count`` steps against the budget."""
        self._steps += count
        if self._step_limit and self._steps > self._step_limit:
            msg = f"{self._filename}:{self._line}: exceeded maximum of {self._step_limit} steps"
            raise ScriptLimitError(
                msg, limit="steps", maximum=self._step_limit, line=self._line
            )

    def iterate(self, iterable: object) -> Iterator[object]:
        """Iterate a script value, charging one step per element."""
        if isinstance(iterable, dict):
            iterable = list(iterable)
        if not isinstance(iterable, (list, tuple, str, range)):
            msg = f"{type_name(iterable)} value is not iterable"
            raise TypeError(msg)
        for item in cast("Iterable[object]", iterable):
            self.tick()
            yield item

    def check_size(self, value: object) -> object:
        """Reject values whose size exceeds the per-operation ceiling."""
        if isinstance(value, (str, list, tuple)) and len(value) > self._max_sequence:
            msg = (
                f"{self._filename}:{self._line}: {type_name(value)} of length "
                f"{len(value)} exceeds maximum of {self._max_sequence}"
            )
            raise ScriptLimitError(
                msg, limit="size", maximum=self._max_sequence, line=self._line
            )
        if (
            isinstance(value, int)
            and not isinstance(value, bool)
            and value.bit_length() > _MAX_INT_BITS
        ):
            msg = f"{self._filename}:{self._line}: integer exceeds {_MAX_INT_BITS} bits"
            raise ScriptLimitError(msg, limit="size", maximum=_MAX_INT_BITS, line=self._line)
        return value

    def _guarded(self, action: Callable[[], T]) -> T:
        try:
            return action()
        except (_BreakSignal, _ContinueSignal) as e:
            msg = f"{self._filename}:{self._line}: break or continue outside loop"
            raise ScriptError(msg, line=self._line) from e
        except _ReturnSignal as e:
            msg = f"{self._filename}:{self._line}: return outside function"
            raise ScriptError(msg, line=self._line) from e
        except _SCRIPT_FAULTS as e:
            detail = e.args[0] if isinstance(e, KeyError) and e.args else e
            msg = f"{self._filename}:{self._line}: {type(e).__name__}: {detail}"
            raise ScriptError(msg, line=self._line) from e

    def _unsupported(self, node: ast.AST, what: str) -> ScriptError:
        line = getattr(node, "lineno", self._line)
        return ScriptError(f"{self._filename}:{line}: {what} is not supported", line=line)

    # =========================================================================
    # Statements
    # =========================================================================

    def _exec_block(self, body: list[ast.stmt], scope: Scope) -> None:
        for stmt in body:
            self._exec(stmt, scope)

    def _exec(self, node: ast.stmt, scope: Scope) -> None:
        self._line = node.lineno
        self.tick()
        handler = getattr(self, f"_exec_{type(node).__name__}", None)
        if handler is None:
            raise self._unsupported(node, f"{type(node).__name__} statement")
        handler(node, scope)

    def _exec_Expr(self, node: ast.Expr, scope: Scope) -> None:  # noqa: N802
        _ = self._eval(node.value, scope)

    def _exec_Pass(self, node: ast.Pass, scope: Scope) -> None:  # noqa: N802
        pass

    def _exec_Break(self, node: ast.Break, scope: Scope) -> None:  # noqa: N802
        raise _BreakSignal

    def _exec_Continue(self, node: ast.Continue, scope: Scope) -> None:  # noqa: N802
        raise _ContinueSignal

    def _exec_Return(self, node: ast.Return, scope: Scope) -> None:  # noqa: N802
        value = self._eval(node.value, scope) if node.value is not None else None
        raise _ReturnSignal(value)

    def _exec_Assign(self, node: ast.Assign, scope: Scope) -> None:  # noqa: N802
        value = self._eval(node.value, scope)
        for target in node.targets:
            self._assign(target, value, scope)

    def _exec_AugAssign(self, node: ast.AugAssign, scope: Scope) -> None:  # noqa: N802
        current = self._eval(node.target, scope)
        value = self._binary(node.op, current, self._eval(node.value, scope), node)
        self._assign(node.target, value, scope)

    def _exec_If(self, node: ast.If, scope: Scope) -> None:  # noqa: N802
        if self._eval(node.test, scope):
            self._exec_block(node.body, scope)
        else:
            self._exec_block(node.orelse, scope)

    def _exec_For(self, node: ast.For, scope: Scope) -> None:  # noqa: N802
        if node.orelse:
            raise self._unsupported(node, "for-else")
        for item in self.iterate(self._eval(node.iter, scope)):
            self._assign(node.target, item, scope)
            try:
                self._exec_block(node.body, scope)
            except _BreakSignal:
                break
            except _ContinueSignal:
                continue

    def _exec_While(self, node: ast.While, scope: Scope) -> None:  # noqa: N802
        if node.orelse:
            raise self._unsupported(node, "while-else")
        while self._eval(node.test, scope):
            self.tick()
            try:
                self._exec_block(node.body, scope)
            except _BreakSignal:
                break
            except _ContinueSignal:
                continue

    def _exec_FunctionDef(self, node: ast.FunctionDef, scope: Scope) -> None:  # noqa: N802
        if node.decorator_list:
            raise self._unsupported(node, "decorator")
        function = self._make_function(node.name, node.args, node.body, scope, node)
        scope.values[node.name] = function

    def _make_function(
        self,
        name: str,
        arguments: ast.arguments,
        body: list[ast.stmt] | ast.expr,
        scope: Scope,
        node: ast.AST,
    ) -> ScriptFunction:
        params = [arg.arg for arg in (*arguments.posonlyargs, *arguments.args)]
        defaults: dict[str, object] = {}
        for param, default in zip(
            params[len(params) - len(arguments.defaults) :], arguments.defaults, strict=True
        ):
            defaults[param] = self._eval(default, scope)
        kwonly = [arg.arg for arg in arguments.kwonlyargs]
        for param, kw_default in zip(kwonly, arguments.kw_defaults, strict=True):
            if kw_default is not None:
                defaults[param] = self._eval(kw_default, scope)
        return ScriptFunction(
            name=name,
            params=params,
            defaults=defaults,
            vararg=arguments.vararg.arg if arguments.vararg else None,
            kwonly=kwonly,
            kwarg=arguments.kwarg.arg if arguments.kwarg else None,
            body=body,
            closure=scope,
            line=getattr(node, "lineno", 0),
            is_lambda=isinstance(body, ast.expr),
        )

    def _assign(self, target: ast.expr, value: object, scope: Scope) -> None:
        match target:
            case ast.Name(id=name):
                scope.values[name] = value
            case ast.Tuple(elts=elts) | ast.List(elts=elts):
                items = list(self.iterate(value))
                if len(items) != len(elts):
                    msg = f"cannot unpack {len(items)} values into {len(elts)} variables"
                    raise ValueError(msg)
                for elt, item in zip(elts, items, strict=True):
                    self._assign(elt, item, scope)
            case ast.Subscript(value=container_node, slice=key_node):
                container = self._eval(container_node, scope)
                if not isinstance(container, (list, dict)):
                    msg = f"{type_name(container)} value does not support item assignment"
                    raise TypeError(msg)
                key = self._eval(key_node, scope)
                cast("dict[object, object]", container)[key] = value
            case ast.Attribute():
                msg = "cannot set attributes"
                raise TypeError(msg)
            case _:
                raise self._unsupported(target, f"assignment to {type(target).__name__}")

    # =========================================================================
    # Expressions
    # =========================================================================

    def _eval(self, node: ast.expr, scope: Scope) -> object:
        handler = getattr(self, f"_eval_{type(node).__name__}", None)
        if handler is None:
            raise self._unsupported(node, f"{type(node).__name__} expression")
        return handler(node, scope)

    def _eval_Constant(self, node: ast.Constant, scope: Scope) -> object:  # noqa: N802
        if isinstance(node.value, (bytes, complex)) or node.value is Ellipsis:
            raise self._unsupported(node, f"{type(node.value).__name__} literal")
        return node.value

    def _eval_Name(self, node: ast.Name, scope: Scope) -> object:  # noqa: N802
        try:
            return scope.lookup(node.id)
        except KeyError:
            pass
        if node.id in self._builtins:
            return self._builtins[node.id]
        msg = f"{self._filename}:{node.lineno}: undefined: {node.id}"
        raise ScriptError(msg, line=node.lineno)

    def _eval_List(self, node: ast.List, scope: Scope) -> object:  # noqa: N802
        return [self._eval(elt, scope) for elt in self._no_starred(node.elts)]

    def _eval_Tuple(self, node: ast.Tuple, scope: Scope) -> object:  # noqa: N802
        return tuple(self._eval(elt, scope) for elt in self._no_starred(node.elts))

    def _eval_Dict(self, node: ast.Dict, scope: Scope) -> object:  # noqa: N802
        result: dict[object, object] = {}
        for key_node, value_node in zip(node.keys, node.values, strict=True):
            if key_node is None:
                raise self._unsupported(node, "dict unpacking")
            key = self._eval(key_node, scope)
            if key in result:
                msg = f"duplicate key: {key!r}"
                raise ValueError(msg)
            result[key] = self._eval(value_node, scope)
        return result

    def _no_starred(self, elts: list[ast.expr]) -> list[ast.expr]:
        for elt in elts:
            if isinstance(elt, ast.Starred):
                raise self._unsupported(elt, "starred expression")
        return elts

    def _eval_BinOp(self, node: ast.BinOp, scope: Scope) -> object:  # noqa: N802
        left = self._eval(node.left, scope)
        right = self._eval(node.right, scope)
        return self._binary(node.op, left, right, node)

    def _binary(self, op: ast.operator, left: object, right: object, node: ast.AST) -> object:
        function = _BINARY_OPS.get(type(op))
        if function is None:
            raise self._unsupported(node, f"{type(op).__name__} operator")
        if isinstance(op, (ast.LShift, ast.RShift)) and isinstance(right, int):
            if not 0 <= right < _MAX_SHIFT:
                msg = f"shift count {right} out of range"
                raise ValueError(msg)
        if isinstance(op, ast.Mult):
            self._check_repeat(left, right)
        if isinstance(op, ast.Mod) and isinstance(left, str) and isinstance(right, list):
            right = tuple(right)
        return self.check_size(function(left, right))

    def _check_repeat(self, left: object, right: object) -> None:
        for sequence, count in ((left, right), (right, left)):
            if (
                isinstance(sequence, (str, list, tuple))
                and isinstance(count, int)
                and count > 0
                and _repeat_weight(sequence) * count > self._max_sequence
            ):
                msg = (
                    f"{self._filename}:{self._line}: repeated {type_name(sequence)} "
                    f"exceeds maximum size of {self._max_sequence}"
                )
                raise ScriptLimitError(
                    msg, limit="size", maximum=self._max_sequence, line=self._line
                )

    def _eval_UnaryOp(self, node: ast.UnaryOp, scope: Scope) -> object:  # noqa: N802
        operand = self._eval(node.operand, scope)
        match node.op:
            case ast.Not():
                return not operand
            case ast.USub():
                return -cast("int", operand)
            case ast.UAdd():
                return +cast("int", operand)
            case ast.Invert():
                return ~cast("int", operand)
            case _:
                raise self._unsupported(node, "unary operator")

    def _eval_BoolOp(self, node: ast.BoolOp, scope: Scope) -> object:  # noqa: N802
        result: object = None
        for value_node in node.values:
            result = self._eval(value_node, scope)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def _eval_Compare(self, node: ast.Compare, scope: Scope) -> object:  # noqa: N802
        left = self._eval(node.left, scope)
        for op, comparator in zip(node.ops, node.comparators, strict=True):
            function = _COMPARE_OPS.get(type(op))
            if function is None:
                raise self._unsupported(node, f"{type(op).__name__} comparison")
            right = self._eval(comparator, scope)
            if not function(left, right):
                return False
            left = right
        return True

    def _eval_IfExp(self, node: ast.IfExp, scope: Scope) -> object:  # noqa: N802
        if self._eval(node.test, scope):
            return self._eval(node.body, scope)
        return self._eval(node.orelse, scope)

    def _eval_Attribute(self, node: ast.Attribute, scope: Scope) -> object:  # noqa: N802
        return self.get_attribute(self._eval(node.value, scope), node.attr)

    def get_attribute(self, value: object, name: str) -> object:
        """Resolve ``value.name`` against struct fields and the method allow-list."""
        if isinstance(value, Struct):
            return value.get(name)
        method = get_method(self, value, name)
        if method is None:
            msg = f"{type_name(value)} has no .{name} field or method"
            raise AttributeError(msg)
        return method

    def _eval_Subscript(self, node: ast.Subscript, scope: Scope) -> object:  # noqa: N802
        container = self._eval(node.value, scope)
        if not isinstance(container, (list, tuple, str, dict, range)):
            msg = f"unhandled index operation {type_name(container)}[...]"
            raise TypeError(msg)
        if isinstance(node.slice, ast.Slice):
            if isinstance(container, dict):
                msg = "dict does not support slicing"
                raise TypeError(msg)
            lower = self._eval(node.slice.lower, scope) if node.slice.lower else None
            upper = self._eval(node.slice.upper, scope) if node.slice.upper else None
            step = self._eval(node.slice.step, scope) if node.slice.step else None
            return container[slice(lower, upper, step)]
        key = self._eval(node.slice, scope)
        return cast("dict[object, object]", container)[key]

    def _eval_Lambda(self, node: ast.Lambda, scope: Scope) -> object:  # noqa: N802
        return self._make_function("lambda", node.args, node.body, scope, node)

    def _eval_ListComp(self, node: ast.ListComp, scope: Scope) -> object:  # noqa: N802
        result: list[object] = []
        inner = Scope(scope)
        self._comprehend(
            node.generators, 0, inner, lambda: result.append(self._eval(node.elt, inner))
        )
        return self.check_size(result)

    def _eval_DictComp(self, node: ast.DictComp, scope: Scope) -> object:  # noqa: N802
        result: dict[object, object] = {}
        inner = Scope(scope)

        def emit() -> None:
            result[self._eval(node.key, inner)] = self._eval(node.value, inner)

        self._comprehend(node.generators, 0, inner, emit)
        return result

    def _comprehend(
        self,
        generators: list[ast.comprehension],
        index: int,
        scope: Scope,
        emit: Callable[[], None],
    ) -> None:
        if index == len(generators):
            emit()
            return
        generator = generators[index]
        if generator.is_async:
            raise self._unsupported(generator.iter, "async comprehension")
        for item in self.iterate(self._eval(generator.iter, scope)):
            self._assign(generator.target, item, scope)
            if all(self._eval(cond, scope) for cond in generator.ifs):
                self._comprehend(generators, index + 1, scope, emit)

    def _eval_Call(self, node: ast.Call, scope: Scope) -> object:  # noqa: N802
        function = self._eval(node.func, scope)
        args: list[object] = []
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                args.extend(self.iterate(self._eval(arg.value, scope)))
            else:
                args.append(self._eval(arg, scope))
        kwargs: dict[str, object] = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                extra = self._eval(keyword.value, scope)
                if not isinstance(extra, dict):
                    msg = f"argument after ** must be a dict, not {type_name(extra)}"
                    raise TypeError(msg)
                for key, value in cast("dict[object, object]", extra).items():
                    if not isinstance(key, str):
                        msg = "keywords must be strings"
                        raise TypeError(msg)
                    self._add_keyword(kwargs, key, value)
            else:
                self._add_keyword(kwargs, keyword.arg, self._eval(keyword.value, scope))
        line = self._line
        try:
            return self.invoke(function, args, kwargs)
        finally:
            self._line = line

    @staticmethod
    def _add_keyword(kwargs: dict[str, object], key: str, value: object) -> None:
        if key in kwargs:
            msg = f"got multiple values for keyword argument {key!r}"
            raise TypeError(msg)
        kwargs[key] = value

    # =========================================================================
    # Calls
    # =========================================================================

    def invoke(self, function: object, args: list[object], kwargs: dict[str, object]) -> object:
        """Call a script function or an allowed built-in."""
        self.tick()
        if isinstance(function, ScriptFunction):
            return self._call_script_function(function, args, kwargs)
        if not callable(function) or isinstance(function, (Struct, type)):
            msg = f"invalid call of non-function ({type_name(function)})"
            raise TypeError(msg)
        return self.check_size(function(*args, **kwargs))

    def _call_script_function(
        self,
        function: ScriptFunction,
        args: list[object],
        kwargs: dict[str, object],
    ) -> object:
        if any(frame is function for frame in self._call_stack):
            msg = f"function {function.name} called recursively"
            raise ValueError(msg)

        scope = Scope(function.closure)
        self._bind_arguments(function, args, kwargs, scope)

        self._call_stack.append(function)
        try:
            if isinstance(function.body, list):
                try:
                    self._exec_block(function.body, scope)
                except _ReturnSignal as signal:
                    return signal.value
                return None
            return self._eval(function.body, scope)
        finally:
            _ = self._call_stack.pop()

    @staticmethod
    def _bind_arguments(
        function: ScriptFunction,
        args: list[object],
        kwargs: dict[str, object],
        scope: Scope,
    ) -> None:
        params = function.params
        if len(args) > len(params) and function.vararg is None:
            msg = (
                f"function {function.name} accepts at most {len(params)} positional "
                f"arguments ({len(args)} given)"
            )
            raise TypeError(msg)
        for param, value in zip(params, args, strict=False):
            scope.values[param] = value
        if function.vararg is not None:
            scope.values[function.vararg] = tuple(args[len(params) :])

        extra: dict[str, object] = {}
        for key, value in kwargs.items():
            if key in params or key in function.kwonly:
                if key in scope.values and key in params[: len(args)]:
                    msg = f"function {function.name} got multiple values for parameter {key!r}"
                    raise TypeError(msg)
                scope.values[key] = value
            elif function.kwarg is not None:
                extra[key] = value
            else:
                msg = f"function {function.name} got an unexpected keyword argument {key!r}"
                raise TypeError(msg)
        if function.kwarg is not None:
            scope.values[function.kwarg] = extra

        for param in (*params, *function.kwonly):
            if param in scope.values:
                continue
            if param in function.defaults:
                scope.values[param] = function.defaults[param]
            else:
                msg = f"function {function.name} missing argument for {param}"
                raise TypeError(msg)
