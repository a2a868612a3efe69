"""DataTemplate backend: sandboxed Jinja2 string substitution."""

import base64
import hashlib
import json
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, cast

import yaml
from jinja2 import StrictUndefined, TemplateError, TemplateSyntaxError, Undefined
from jinja2.sandbox import SandboxedEnvironment, safe_range

from tmplconv.exceptions import BackendError

if TYPE_CHECKING:
    from tmplconv.backends._protocol import BackendContext
    from tmplconv.context import ConversionContext
    from tmplconv.store import Template

# Jinja2 tags: {{ ... }} and {% ... %}, with optional whitespace control
_TAG_RE = re.compile(r"(\{\{-?|\{%-?)(.*?)(-?\}\}|-?%\})", re.DOTALL)

# A string literal, or a dot that starts a root reference (not an attribute access)
_ROOT_DOT_RE = re.compile(
    r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')|(?<![\w)\]}.])\.(?=[A-Za-z_])"""
)


def translate_root_references(body: str) -> str:
    """Rewrite Go-template root references into Jinja2 names.

    ``{{ .input.name }}`` becomes ``{{ input.name }}``. Attribute access such
    as ``input.name`` and dots inside string literals are left untouched.

    Example:
        >>> translate_root_references("hello {{ .input.name | upper }}")
        'hello {{ input.name | upper }}'
    """

    def fix_tag(match: re.Match[str]) -> str:
        inner = _ROOT_DOT_RE.sub(lambda m: m.group(1) or "", match.group(2))
        return f"{match.group(1)}{inner}{match.group(3)}"

    return _TAG_RE.sub(fix_tag, body)


def _b64enc(value: object) -> str:
    return base64.b64encode(str(value).encode("utf-8")).decode("ascii")


def _b64dec(value: object) -> str:
    return base64.b64decode(str(value)).decode("utf-8")


def _to_json(value: object) -> str:
    return json.dumps(value, default=str)


def _to_yaml(value: object) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")


def _quote(value: object) -> str:
    return json.dumps(str(value))


def _squote(value: object) -> str:
    return f"'{value}'"


def _trim_prefix(value: object, prefix: str) -> str:
    return str(value).removeprefix(prefix)


def _trim_suffix(value: object, suffix: str) -> str:
    return str(value).removesuffix(suffix)


def _has_prefix(value: object, prefix: str) -> bool:
    return str(value).startswith(prefix)


def _has_suffix(value: object, suffix: str) -> bool:
    return str(value).endswith(suffix)


def _contains(value: object, substring: str) -> bool:
    return substring in str(value)


def _split(value: object, separator: str | None = None) -> list[str]:
    return str(value).split(separator)


def _regex_replace(value: object, pattern: str, replacement: str) -> str:
    return re.sub(pattern, replacement, str(value))


def _sha256sum(value: object) -> str:
    return hashlib.sha256(str(value).encode("utf-8")).hexdigest()


SAFE_FUNCTIONS: dict[str, Callable[..., object]] = {
    "b64dec": _b64dec,
    "b64enc": _b64enc,
    "contains": _contains,
    "has_prefix": _has_prefix,
    "has_suffix": _has_suffix,
    "quote": _quote,
    "regex_replace": _regex_replace,
    "sha256sum": _sha256sum,
    "split": _split,
    "squote": _squote,
    "to_json": _to_json,
    "to_yaml": _to_yaml,
    "trim_prefix": _trim_prefix,
    "trim_suffix": _trim_suffix,
}


def create_sandbox(*, strict_undefined: bool = True) -> SandboxedEnvironment:
    """Create the sandboxed Jinja2 environment used for DataTemplate bodies.

    Globals are replaced by the restricted function library, which is also
    registered as filters alongside Jinja2's built-in filters.
    """
    env = SandboxedEnvironment(
        autoescape=False,  # noqa: S701
        keep_trailing_newline=True,
        undefined=StrictUndefined if strict_undefined else Undefined,
    )
    env.filters.update(SAFE_FUNCTIONS)
    env.globals = {**SAFE_FUNCTIONS, "range": safe_range}
    return env


class DataTemplateBackend:
    """Expands ``.yml``/``.yaml`` templates with sandboxed Jinja2."""

    _env: SandboxedEnvironment

    def __init__(self, *, strict_undefined: bool = True) -> None:
        """Initialize the backend.

        Args:
            strict_undefined: If True, referencing an undefined name fails the
                expansion instead of rendering an empty string.
        """
        self._env = create_sandbox(strict_undefined=strict_undefined)

    @property
    def name(self) -> str:
        return "datatemplate"

    def render(
        self,
        context: "ConversionContext",  # noqa: UP037
        template: "Template",  # noqa: UP037
        backend_context: "BackendContext",  # noqa: UP037
    ) -> str:
        """Render the template body with ``{build, repo, input}``.

        Raises:
            BackendError: On template syntax errors, undefined names or
                sandbox violations.
        """
        context.check()
        body = translate_root_references(template.data)
        try:
            compiled = self._env.from_string(body)
            return cast("str", compiled.render(backend_context.as_dict()))
        except TemplateSyntaxError as e:
            msg = f"template {template.filename}: syntax error at line {e.lineno}: {e.message}"
            raise BackendError(msg, backend=self.name, template=template.filename, cause=e) from e
        except TemplateError as e:
            msg = f"template {template.filename}: {e.message}"
            raise BackendError(msg, backend=self.name, template=template.filename, cause=e) from e
