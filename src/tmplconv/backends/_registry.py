"""Registry mapping template extensions to backends."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tmplconv.backends._datalang import DataLangBackend
from tmplconv.backends._datatemplate import DataTemplateBackend
from tmplconv.backends._script import ScriptBackend

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tmplconv.backends._protocol import TemplateBackend
    from tmplconv.config import Config

DATATEMPLATE_EXTENSIONS = (".yml", ".yaml")
SCRIPT_EXTENSIONS = (".star", ".starlark", ".script")
DATALANG_EXTENSIONS = (".jsonnet",)


@dataclass(slots=True)
class BackendRegistry:
    """Registry of template backends keyed by file extension.

    Extensions include the leading dot and are matched exactly.
    """

    _backends: "dict[str, TemplateBackend]" = field(default_factory=dict)  # noqa: UP037

    def register(self, backend: "TemplateBackend", *extensions: str) -> None:  # noqa: UP037
        """Register ``backend`` for each of ``extensions``.

        A later registration for the same extension replaces the earlier one.

        Raises:
            ValueError: If no extension is given or one lacks its leading dot.
        """
        if not extensions:
            msg = "at least one extension is required"
            raise ValueError(msg)
        for extension in extensions:
            if not extension.startswith(".") or len(extension) < 2:  # noqa: PLR2004
                msg = f"invalid extension {extension!r}: must start with '.'"
                raise ValueError(msg)
            self._backends[extension] = backend

    def get(self, extension: str) -> "TemplateBackend | None":  # noqa: UP037
        """Get the backend for an extension, or None if none is registered."""
        return self._backends.get(extension)

    def extensions(self) -> list[str]:
        """All registered extensions, sorted."""
        return sorted(self._backends)

    def __contains__(self, extension: object) -> bool:
        return extension in self._backends


def create_default_registry(
    config: "Config | None" = None,  # noqa: UP037
    *,
    logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
) -> BackendRegistry:
    """Create a registry with the DataTemplate, Script and DataLang backends.

    Args:
        config: Supplies backend limits. Defaults are used when None.
        logger: Passed to backends that log (the Script backend's ``print``).

    Returns:
        A BackendRegistry covering every supported extension.
    """
    registry = BackendRegistry()
    if config is None:
        registry.register(DataTemplateBackend(), *DATATEMPLATE_EXTENSIONS)
        registry.register(ScriptBackend(logger=logger), *SCRIPT_EXTENSIONS)
        registry.register(DataLangBackend(), *DATALANG_EXTENSIONS)
        return registry

    registry.register(
        DataTemplateBackend(strict_undefined=config.datatemplate.strict_undefined),
        *DATATEMPLATE_EXTENSIONS,
    )
    registry.register(
        ScriptBackend(
            step_limit=config.script.step_limit,
            size_limit=config.script.size_limit,
            logger=logger,
        ),
        *SCRIPT_EXTENSIONS,
    )
    registry.register(
        DataLangBackend(
            max_stack=config.datalang.max_stack,
            max_trace=config.datalang.max_trace,
        ),
        *DATALANG_EXTENSIONS,
    )
    return registry
