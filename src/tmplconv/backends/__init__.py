"""Template backends and the extension registry.

A backend expands one stored template with the ``{build, repo, input}``
context. Backends are selected by the extension of the template's ``load``
value:

    .yml, .yaml                 DataTemplateBackend (sandboxed Jinja2)
    .star, .starlark, .script   ScriptBackend (Starlark dialect, step/size quotas)
    .jsonnet                    DataLangBackend (Jsonnet)

Additional backends are added with BackendRegistry.register().
"""

from tmplconv.backends._datalang import (
    DEFAULT_MAX_STACK,
    DEFAULT_MAX_TRACE,
    DataLangBackend,
    build_ext_codes,
    build_ext_vars,
)
from tmplconv.backends._datatemplate import (
    SAFE_FUNCTIONS,
    DataTemplateBackend,
    create_sandbox,
    translate_root_references,
)
from tmplconv.backends._protocol import BackendContext, TemplateBackend
from tmplconv.backends._registry import (
    DATALANG_EXTENSIONS,
    DATATEMPLATE_EXTENSIONS,
    SCRIPT_EXTENSIONS,
    BackendRegistry,
    create_default_registry,
)
from tmplconv.backends._script import DEFAULT_SIZE_LIMIT, DEFAULT_STEP_LIMIT, ScriptBackend

__all__ = [
    "DATALANG_EXTENSIONS",
    "DATATEMPLATE_EXTENSIONS",
    "DEFAULT_MAX_STACK",
    "DEFAULT_MAX_TRACE",
    "DEFAULT_SIZE_LIMIT",
    "DEFAULT_STEP_LIMIT",
    "SAFE_FUNCTIONS",
    "SCRIPT_EXTENSIONS",
    "BackendContext",
    "BackendRegistry",
    "DataLangBackend",
    "DataTemplateBackend",
    "ScriptBackend",
    "TemplateBackend",
    "build_ext_codes",
    "build_ext_vars",
    "create_default_registry",
    "create_sandbox",
    "translate_root_references",
]
