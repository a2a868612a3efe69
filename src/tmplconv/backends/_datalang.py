"""DataLang backend: Jsonnet evaluated into a document stream."""

import json
from typing import TYPE_CHECKING, NoReturn

import _jsonnet

from tmplconv.exceptions import BackendError

if TYPE_CHECKING:
    from tmplconv.backends._protocol import BackendContext
    from tmplconv.context import ConversionContext
    from tmplconv.store import Template

DEFAULT_MAX_STACK = 500
DEFAULT_MAX_TRACE = 20


def _ext_string(value: object) -> str:
    match value:
        case str():
            return value
        case bool():
            return "true" if value else "false"
        case None:
            return ""
        case int() | float():
            return str(value)
        case _:
            return json.dumps(value, sort_keys=True)


def build_ext_vars(backend_context: "BackendContext") -> dict[str, str]:  # noqa: UP037
    """String external variables: ``build.<field>`` and ``repo.<field>``."""
    ext_vars: dict[str, str] = {}
    for prefix, values in (("build", backend_context.build), ("repo", backend_context.repo)):
        for key, value in values.items():
            ext_vars[f"{prefix}.{key}"] = _ext_string(value)
    return ext_vars


def build_ext_codes(backend_context: "BackendContext") -> dict[str, str]:  # noqa: UP037
    """Code external variables: ``input.<key>`` holding each value as JSON."""
    return {
        f"input.{key}": json.dumps(value, default=str)
        for key, value in backend_context.input.items()
    }


def _deny_import(directory: str, path: str) -> NoReturn:
    msg = f"imports are not allowed: {path}"
    raise RuntimeError(msg)


class DataLangBackend:
    """Expands ``.jsonnet`` templates.

    Build and repo fields are exposed as string external variables, input
    values as code external variables. Imports are rejected. A top-level
    array is rendered as a stream with one document per element.
    """

    _max_stack: int
    _max_trace: int

    def __init__(
        self,
        *,
        max_stack: int = DEFAULT_MAX_STACK,
        max_trace: int = DEFAULT_MAX_TRACE,
    ) -> None:
        self._max_stack = max_stack
        self._max_trace = max_trace

    @property
    def name(self) -> str:
        return "datalang"

    def render(
        self,
        context: "ConversionContext",  # noqa: UP037
        template: "Template",  # noqa: UP037
        backend_context: "BackendContext",  # noqa: UP037
    ) -> str:
        """Evaluate the template and render each resulting document.

        Raises:
            BackendError: On Jsonnet evaluation errors.
        """
        context.check()
        filename = template.filename
        try:
            evaluated = _jsonnet.evaluate_snippet(
                filename,
                template.data,
                ext_vars=build_ext_vars(backend_context),
                ext_codes=build_ext_codes(backend_context),
                max_stack=self._max_stack,
                max_trace=self._max_trace,
                import_callback=_deny_import,
            )
        except RuntimeError as e:
            msg = f"template {filename}: {str(e).strip()}"
            raise BackendError(msg, backend=self.name, template=filename, cause=e) from e

        result: object = json.loads(evaluated)
        documents = result if isinstance(result, list) else [result]
        return "".join(f"---\n{json.dumps(doc, indent=2)}\n" for doc in documents)
