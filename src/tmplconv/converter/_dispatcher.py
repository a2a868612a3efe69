"""Dispatching a resolved template to the backend for its extension."""

from typing import TYPE_CHECKING

from tmplconv.backends import BackendContext
from tmplconv.exceptions import (
    BackendError,
    ConversionCancelledError,
    DeadlineExceededError,
    InvalidExtensionError,
)

if TYPE_CHECKING:
    from tmplconv.backends import BackendRegistry, TemplateBackend
    from tmplconv.converter._reference import TemplateReference
    from tmplconv.models import ConversionRequest
    from tmplconv.store import Template


class Dispatcher:
    """Selects a backend by extension and runs it with the request context."""

    _registry: "BackendRegistry"  # noqa: UP037

    def __init__(self, registry: "BackendRegistry") -> None:  # noqa: UP037
        self._registry = registry

    @property
    def registry(self) -> "BackendRegistry":  # noqa: UP037
        return self._registry

    def backend_for(
        self,
        reference: "TemplateReference",  # noqa: UP037
        *,
        document: int | None = None,
    ) -> "TemplateBackend":  # noqa: UP037
        """Return the backend registered for the reference's extension.

        Raises:
            InvalidExtensionError: If no backend handles the extension.
        """
        backend = self._registry.get(reference.extension)
        if backend is None:
            supported = ", ".join(self._registry.extensions())
            msg = (
                f"document {document}: template extension {reference.extension!r} of "
                f"{reference.load!r} is invalid, must be one of: {supported}"
            )
            raise InvalidExtensionError(
                msg, extension=reference.extension, load=reference.load, document=document
            )
        return backend

    def dispatch(
        self,
        request: "ConversionRequest",  # noqa: UP037
        reference: "TemplateReference",  # noqa: UP037
        template: "Template",  # noqa: UP037
        *,
        document: int | None = None,
    ) -> str:
        """Expand ``template`` with ``{build, repo, input}``.

        Raises:
            InvalidExtensionError: If no backend handles the extension.
            BackendError: If expansion fails for any reason.
        """
        backend = self.backend_for(reference, document=document)
        backend_context = BackendContext.from_request(request, reference.data)
        try:
            return backend.render(request.context, template, backend_context)
        except BackendError as e:
            if e.document is None:
                e.document = document
            raise
        except (ConversionCancelledError, DeadlineExceededError):
            raise
        except Exception as e:
            msg = f"document {document}: {backend.name} backend failed on {template.filename}: {e}"
            raise BackendError(
                msg,
                backend=backend.name,
                template=template.filename,
                cause=e,
                document=document,
            ) from e
