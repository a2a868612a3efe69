"""Template backend protocol and the context handed to every backend."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tmplconv.context import ConversionContext
    from tmplconv.models import ConversionRequest
    from tmplconv.store import Template


@dataclass(slots=True, frozen=True)
class BackendContext:
    """Input context composed for a backend: ``{build, repo, input}``.

    All three keys are always present, whether or not the template body
    references them.

    Attributes:
        build: Build metadata as plain data.
        repo: Repository metadata as plain data.
        input: The template document's ``data`` mapping.
    """

    build: Mapping[str, object] = field(default_factory=dict)
    repo: Mapping[str, object] = field(default_factory=dict)
    input: Mapping[str, object] = field(default_factory=dict)

    @classmethod
    def from_request(
        cls,
        request: "ConversionRequest",  # noqa: UP037
        data: Mapping[str, object],
    ) -> "BackendContext":  # noqa: UP037
        """Compose the context for one template document."""
        return cls(
            build=request.build.model_dump(mode="json"),
            repo=request.repo.model_dump(mode="json"),
            input=dict(data),
        )

    def as_dict(self) -> dict[str, object]:
        """Return ``{"build": ..., "repo": ..., "input": ...}``."""
        return {
            "build": dict(self.build),
            "repo": dict(self.repo),
            "input": dict(self.input),
        }


@runtime_checkable
class TemplateBackend(Protocol):
    """Expands a template body with a backend context.

    Implementations raise BackendError (or ResourceLimitError) on failure and
    never return partial output.
    """

    @property
    def name(self) -> str:
        """Short backend name used in logs and errors."""
        ...

    def render(
        self,
        context: "ConversionContext",  # noqa: UP037
        template: "Template",  # noqa: UP037
        backend_context: BackendContext,
    ) -> str:
        """Expand ``template`` and return the resulting text."""
        ...
