"""The template converter: gate, expand, reassemble."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from tmplconv.backends import create_default_registry
from tmplconv.converter._dispatcher import Dispatcher
from tmplconv.converter._gate import is_applicable
from tmplconv.converter._reference import extract_reference
from tmplconv.converter._resolver import resolve_template
from tmplconv.converter._stream import Document, DocumentKind, iter_documents
from tmplconv.exceptions import ConversionError
from tmplconv.models import ConvertedConfig
from tmplconv.utils import create_logger, create_null_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tmplconv.backends import BackendRegistry
    from tmplconv.config import Config
    from tmplconv.models import ConversionRequest
    from tmplconv.store import TemplateStore

DOCUMENT_MARKER = "---"


@dataclass(slots=True, frozen=True)
class Segment:
    """Output produced for one input document.

    Attributes:
        document: The input document.
        text: The document's raw span, or the template expansion.
        expanded: Whether ``text`` came from a template backend.
    """

    document: Document
    text: str
    expanded: bool


def join_segments(segments: list[Segment]) -> str:
    """Concatenate segments in order into one document stream.

    Consecutive segments are separated by a newline, and an expansion that
    is not first is preceded by a ``---`` marker unless it starts with one.
    """
    parts: list[str] = []
    for segment in segments:
        text = segment.text
        if not text:
            continue
        if segment.expanded and parts and not text.startswith(DOCUMENT_MARKER):
            text = f"{DOCUMENT_MARKER}\n{text}"
        if parts and not parts[-1].endswith("\n"):
            parts.append("\n")
        parts.append(text)
    return "".join(parts)


class TemplateConverter:
    """Expands ``kind: template`` documents of a pipeline configuration.

    The store and backend registry are injected; the converter holds no
    per-request state and can be shared between threads.

    Example:
        >>> store = InMemoryTemplateStore()
        >>> _ = store.add("octocat", "greeting.yaml", "kind: pipeline\\nname: {{ .input.name }}\\n")
        >>> converter = TemplateConverter(store)
        >>> request = ConversionRequest(
        ...     data="kind: template\\nload: greeting.yaml\\ndata:\\n  name: hello\\n",
        ...     repo=Repo(namespace="octocat"),
        ... )
        >>> converter.convert(request).data
        'kind: pipeline\\nname: hello\\n'
    """

    _store: "TemplateStore"  # noqa: UP037
    _dispatcher: Dispatcher
    _logger: "FilteringBoundLogger"  # noqa: UP037

    def __init__(
        self,
        store: "TemplateStore",  # noqa: UP037
        registry: "BackendRegistry | None" = None,  # noqa: UP037
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the converter.

        Args:
            store: Template store used to resolve ``load`` references.
            registry: Backends by extension. Defaults to the built-in
                DataTemplate, Script and DataLang backends.
            logger: Receives conversion events. Events are dropped when None.
        """
        self._logger = logger if logger is not None else create_null_logger()
        self._store = store
        if registry is None:
            registry = create_default_registry(logger=self._logger)
        self._dispatcher = Dispatcher(registry)

    @classmethod
    def from_config(
        cls,
        store: "TemplateStore",  # noqa: UP037
        config: "Config",  # noqa: UP037
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> Self:
        """Create a converter with backend limits and logging from ``config``.

        A logger is created from ``config.logging`` unless one is given.
        """
        if logger is None:
            logger = create_logger(
                level=config.logging.level.value,
                log_format=config.logging.format.value,
                log_file=config.logging.file,
            )
        return cls(store, create_default_registry(config, logger=logger), logger=logger)

    @property
    def store(self) -> "TemplateStore":  # noqa: UP037
        return self._store

    @property
    def registry(self) -> "BackendRegistry":  # noqa: UP037
        return self._dispatcher.registry

    def convert(self, request: "ConversionRequest") -> ConvertedConfig | None:  # noqa: UP037
        """Expand every template document of ``request.data``.

        Returns:
            The merged configuration, or None when the file is not a YAML
            file containing a template document.

        Raises:
            ConversionError: If any document fails. No partial output is
                returned.
        """
        log = self._logger.bind(path=request.path, namespace=request.namespace)
        if not is_applicable(request.path, request.data):
            log.debug("conversion_skipped", extension=request.extension)
            return None

        try:
            data = self.assemble(request)
        except ConversionError as e:
            log.warning(
                "conversion_failed",
                error=str(e),
                error_type=type(e).__name__,
                document=e.document,
            )
            raise

        log.info("conversion_completed", size=len(data))
        return ConvertedConfig(data=data)

    def assemble(self, request: "ConversionRequest") -> str:  # noqa: UP037
        """Expand and join all documents without the applicability gate.

        Raises:
            ConversionError: If any document fails.
        """
        return join_segments(list(self.iter_segments(request)))

    def iter_segments(self, request: "ConversionRequest") -> Iterator[Segment]:  # noqa: UP037
        """Yield the output segment of each document in input order.

        The request context is checked before every document.

        Raises:
            ConversionError: If any document fails.
        """
        log = self._logger.bind(path=request.path, namespace=request.namespace)
        for document in iter_documents(request.data):
            request.context.check()
            match document.kind:
                case DocumentKind.PIPELINE:
                    log.debug("document_passthrough", document=document.index)
                    yield Segment(document=document, text=document.raw, expanded=False)
                case DocumentKind.TEMPLATE:
                    yield Segment(
                        document=document,
                        text=self._expand(request, document),
                        expanded=True,
                    )

    def _expand(self, request: "ConversionRequest", document: Document) -> str:  # noqa: UP037
        reference = extract_reference(document.value, document.index)
        # Unknown extensions fail before the store is queried.
        _ = self._dispatcher.backend_for(reference, document=document.index)
        template = resolve_template(
            self._store,
            request.context,
            reference,
            request.namespace,
            document=document.index,
        )
        self._logger.debug(
            "template_resolved",
            document=document.index,
            load=reference.load,
            namespace=request.namespace,
        )
        text = self._dispatcher.dispatch(request, reference, template, document=document.index)
        self._logger.debug(
            "template_expanded",
            document=document.index,
            load=reference.load,
            size=len(text),
        )
        return text
