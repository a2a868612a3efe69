"""Template lookup with uniform error semantics."""

from typing import TYPE_CHECKING

from tmplconv.exceptions import (
    ConversionCancelledError,
    DeadlineExceededError,
    StoreError,
    TemplateNotFoundError,
)

if TYPE_CHECKING:
    from tmplconv.context import ConversionContext
    from tmplconv.converter._reference import TemplateReference
    from tmplconv.store import Template, TemplateStore


def resolve_template(
    store: "TemplateStore",  # noqa: UP037
    context: "ConversionContext",  # noqa: UP037
    reference: "TemplateReference",  # noqa: UP037
    namespace: str,
    *,
    document: int | None = None,
) -> "Template":  # noqa: UP037
    """Fetch the template a reference names from ``namespace``.

    Raises:
        TemplateNotFoundError: If the store has no such template.
        StoreError: If the store fails for any other reason.
        ConversionCancelledError: If the context is cancelled.
        DeadlineExceededError: If the context's deadline passes.
    """
    context.check()
    try:
        return store.find_by_name(context, reference.name, namespace)
    except (TemplateNotFoundError, StoreError) as e:
        if e.document is None:
            e.document = document
        raise
    except (ConversionCancelledError, DeadlineExceededError):
        raise
    except Exception as e:
        msg = f"document {document}: template store failed to look up {reference.name!r}: {e}"
        raise StoreError(msg, cause=e, document=document) from e
