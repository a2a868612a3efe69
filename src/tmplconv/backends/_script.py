"""Script backend: runs a Starlark-dialect ``main(ctx)`` under quotas."""

import json
from collections.abc import Mapping
from itertools import chain
from typing import TYPE_CHECKING

from tmplconv.exceptions import BackendError, ResourceLimitError, ScriptError, ScriptLimitError
from tmplconv.script import Interpreter, ScriptFunction, Struct, to_plain, to_script
from tmplconv.utils import create_null_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tmplconv.backends._protocol import BackendContext
    from tmplconv.context import ConversionContext
    from tmplconv.store import Template

DEFAULT_STEP_LIMIT = 50_000

# 1 MiB of rendered output
DEFAULT_SIZE_LIMIT = 1024 * 1024


def _as_struct(name: str, values: Mapping[str, object]) -> Struct:
    return Struct(name, {key: to_script(value) for key, value in values.items()})


class ScriptBackend:
    """Expands ``.star``/``.starlark``/``.script`` templates.

    The template body must define ``main(ctx)``. ``ctx.build``, ``ctx.repo``
    and ``ctx.input`` are read-only structs. ``main`` returns a dict (one
    document) or a list of dicts (one document each). Each document is
    written as ``---`` followed by its JSON encoding.

    Both ceilings apply to one render: ``step_limit`` bounds evaluation steps
    and ``size_limit`` bounds the UTF-8 size of the rendered text. A value of
    0 disables a ceiling.
    """

    _step_limit: int
    _size_limit: int
    _logger: "FilteringBoundLogger"  # noqa: UP037

    def __init__(
        self,
        *,
        step_limit: int = DEFAULT_STEP_LIMIT,
        size_limit: int = DEFAULT_SIZE_LIMIT,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        if step_limit < 0 or size_limit < 0:
            msg = "step_limit and size_limit must not be negative"
            raise ValueError(msg)
        self._step_limit = step_limit
        self._size_limit = size_limit
        self._logger = logger if logger is not None else create_null_logger()

    @property
    def name(self) -> str:
        return "script"

    @property
    def step_limit(self) -> int:
        return self._step_limit

    @property
    def size_limit(self) -> int:
        return self._size_limit

    def render(
        self,
        context: "ConversionContext",  # noqa: UP037
        template: "Template",  # noqa: UP037
        backend_context: "BackendContext",  # noqa: UP037
    ) -> str:
        """Run the script and render its documents.

        Raises:
            ResourceLimitError: If the step or size ceiling is exceeded.
            BackendError: On script errors or an invalid ``main`` result.
        """
        context.check()
        filename = template.filename
        interp = Interpreter(
            step_limit=self._step_limit,
            logger=self._logger.bind(template=filename),
        )

        try:
            module = interp.exec_module(template.data, filename=filename)
            main = module.get("main")
            if not isinstance(main, ScriptFunction):
                msg = f"template {filename}: main function not found"
                raise BackendError(msg, backend=self.name, template=filename)

            ctx = Struct(
                "context",
                {
                    "build": _as_struct("build", backend_context.build),
                    "repo": _as_struct("repo", backend_context.repo),
                    "input": _as_struct("input", backend_context.input),
                },
            )
            result = interp.call(main, ctx)
            documents = self._documents(result, filename)
            output, size = self._encode(documents, filename)
        except ScriptLimitError as e:
            msg = f"template {filename}: {e}"
            raise ResourceLimitError(
                msg,
                backend=self.name,
                template=filename,
                limit=e.limit,
                maximum=e.maximum,
                cause=e,
            ) from e
        except ScriptError as e:
            msg = f"template {filename}: {e}"
            raise BackendError(msg, backend=self.name, template=filename, cause=e) from e

        self._logger.debug("script_rendered", template=filename, steps=interp.steps, size=size)
        return output

    def _encode(self, documents: list[object], filename: str) -> tuple[str, int]:
        """Encode documents chunk by chunk, stopping once output passes ``size_limit``."""
        encoder = json.JSONEncoder()
        parts: list[str] = []
        size = 0
        for document in documents:
            for chunk in chain(("---\n",), encoder.iterencode(to_plain(document)), ("\n",)):
                size += len(chunk.encode("utf-8"))
                if self._size_limit and size > self._size_limit:
                    msg = (
                        f"template {filename}: output exceeds maximum of "
                        f"{self._size_limit} bytes"
                    )
                    raise ResourceLimitError(
                        msg,
                        backend=self.name,
                        template=filename,
                        limit="size",
                        maximum=self._size_limit,
                    )
                parts.append(chunk)
        return "".join(parts), size

    def _documents(self, result: object, filename: str) -> list[object]:
        match result:
            case dict():
                return [result]
            case list() | tuple():
                for item in result:
                    if not isinstance(item, dict):
                        msg = f"template {filename}: main must return a list of dicts"
                        raise BackendError(msg, backend=self.name, template=filename)
                return list(result)
            case _:
                msg = f"template {filename}: main must return a dict or a list of dicts"
                raise BackendError(msg, backend=self.name, template=filename)
