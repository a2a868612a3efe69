"""Filesystem-backed template store.

Templates live at ``<root>/<namespace>/<name><extension>``. Each namespace is
a directory, so lookups never cross namespaces.
"""

from pathlib import Path
from typing import TYPE_CHECKING

from tmplconv.exceptions import StoreError, TemplateNotFoundError
from tmplconv.store._models import Template
from tmplconv.utils import create_null_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tmplconv.context import ConversionContext


def _is_safe_segment(segment: str) -> bool:
    """Check that a name can be used as a single path segment."""
    if segment in {"", ".", ".."}:
        return False
    return "/" not in segment and "\\" not in segment


class FileSystemTemplateStore:
    """Template store reading template files from a directory tree."""

    _root: Path
    _logger: "FilteringBoundLogger"  # noqa: UP037

    def __init__(
        self,
        root: str | Path,
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the store.

        Args:
            root: Directory containing one subdirectory per namespace.
            logger: Optional logger for debug-level lookup logging.
        """
        self._root = Path(root)
        self._logger = logger if logger is not None else create_null_logger()

    @property
    def root(self) -> Path:
        """Directory containing the namespace directories."""
        return self._root

    def find_by_name(
        self,
        context: "ConversionContext",  # noqa: UP037
        name: str,
        namespace: str,
    ) -> Template:
        """Look up a template file by name.

        Raises:
            TemplateNotFoundError: If no file matches, or the name or
                namespace cannot be a single path segment.
            StoreError: If more than one file matches the name.
            OSError: If the template file cannot be read.
        """
        context.check()
        if not _is_safe_segment(name) or not _is_safe_segment(namespace):
            self._logger.debug("store_find", name=name, namespace=namespace, found=False)
            msg = f"template {name!r} not found in namespace {namespace!r}"
            raise TemplateNotFoundError(msg, name=name, namespace=namespace)

        directory = self._root / namespace
        matches = (
            sorted(
                path
                for path in directory.iterdir()
                if path.is_file() and path.suffix and path.name == f"{name}{path.suffix}"
            )
            if directory.is_dir()
            else []
        )

        if not matches:
            self._logger.debug("store_find", name=name, namespace=namespace, found=False)
            msg = f"template {name!r} not found in namespace {namespace!r}"
            raise TemplateNotFoundError(msg, name=name, namespace=namespace)
        if len(matches) > 1:
            candidates = ", ".join(path.name for path in matches)
            msg = f"template name {name!r} is ambiguous in namespace {namespace!r}: {candidates}"
            raise StoreError(msg)

        path = matches[0]
        context.check()
        stat = path.stat()
        template = Template(
            name=name,
            namespace=namespace,
            extension=path.suffix,
            data=path.read_text(encoding="utf-8"),
            created=int(stat.st_ctime),
            updated=int(stat.st_mtime),
        )
        self._logger.debug(
            "store_find", name=name, namespace=namespace, found=True, path=str(path)
        )
        return template
