"""Template store protocol for dependency injection.

The converter only reads templates. Any object with a matching
``find_by_name`` satisfies the protocol, so hosts can plug in their own
storage without subclassing.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tmplconv.context import ConversionContext
    from tmplconv.store._models import Template


@runtime_checkable
class TemplateStore(Protocol):
    """Resolves a template name within a namespace.

    Example:
        >>> def body_of(store: TemplateStore, name: str) -> str:
        ...     ctx = ConversionContext.background()
        ...     return store.find_by_name(ctx, name, "octocat").data
    """

    def find_by_name(
        self,
        context: "ConversionContext",  # noqa: UP037
        name: str,
        namespace: str,
    ) -> "Template":  # noqa: UP037
        """Look up a template by name.

        Implementations must call ``context.check()`` before blocking I/O
        and should abort promptly once the context expires.

        Args:
            context: Cancellation and deadline of the calling conversion.
            name: Template name without extension.
            namespace: Namespace the lookup is scoped to.

        Returns:
            The stored template.

        Raises:
            TemplateNotFoundError: If no template has that name in the namespace.
            ConversionCancelledError: If the context was cancelled.
            DeadlineExceededError: If the context deadline passed.
        """
        ...
