"""tmplconv exceptions."""

from pathlib import Path


class TmplconvError(Exception):
    """Base exception for tmplconv errors."""


# =============================================================================
# Conversion Exceptions
# =============================================================================


class ConversionError(TmplconvError):
    """Base exception for failures that abort a conversion.

    Attributes:
        document: Zero-based index of the document being processed, if known.
    """

    def __init__(self, message: str, *, document: int | None = None) -> None:
        """Initialize with error message and optional document index."""
        super().__init__(message)
        self.document: int | None = document


class DocumentSyntaxError(ConversionError):
    """Raised when a document cannot be decoded or lacks a ``kind`` field."""

    def __init__(
        self,
        message: str,
        *,
        document: int | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message, document=document)
        self.line: int | None = line
        self.column: int | None = column


class UnsupportedKindError(ConversionError):
    """Raised when a document declares a kind other than template or pipeline."""

    def __init__(self, message: str, *, kind: object, document: int | None = None) -> None:
        """Initialize with error message and the offending kind."""
        super().__init__(message, document=document)
        self.kind: object = kind


class TemplateReferenceInvalidError(ConversionError):
    """Raised when a template document has a malformed ``load`` or ``data``."""

    def __init__(self, message: str, *, field: str, document: int | None = None) -> None:
        """Initialize with error message and the invalid field name."""
        super().__init__(message, document=document)
        self.field: str = field


class TemplateNotFoundError(ConversionError, KeyError):
    """Raised when a template name does not exist in the given namespace."""

    def __init__(
        self,
        message: str,
        *,
        name: str,
        namespace: str,
        document: int | None = None,
    ) -> None:
        """Initialize with error message and lookup key."""
        super().__init__(message, document=document)
        self.name: str = name
        self.namespace: str = namespace

    def __str__(self) -> str:
        # KeyError quotes its message otherwise.
        return str(self.args[0]) if self.args else ""


class StoreError(ConversionError):
    """Raised when the template store fails for a reason other than not-found."""

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        document: int | None = None,
    ) -> None:
        """Initialize with error message and underlying cause."""
        super().__init__(message, document=document)
        self.cause: BaseException | None = cause


class InvalidExtensionError(ConversionError):
    """Raised when ``load`` has an extension no backend is registered for."""

    def __init__(
        self,
        message: str,
        *,
        extension: str,
        load: str,
        document: int | None = None,
    ) -> None:
        """Initialize with error message and the unmatched extension."""
        super().__init__(message, document=document)
        self.extension: str = extension
        self.load: str = load


class BackendError(ConversionError):
    """Raised when a template backend fails to expand a template."""

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        *,
        backend: str,
        template: str,
        cause: BaseException | None = None,
        document: int | None = None,
    ) -> None:
        """Initialize with error message, backend and template context."""
        super().__init__(message, document=document)
        self.backend: str = backend
        self.template: str = template
        self.cause: BaseException | None = cause


class ResourceLimitError(BackendError):
    """Raised when a script exceeds its step or output-size ceiling.

    Attributes:
        limit: Which ceiling was exceeded, ``"steps"`` or ``"size"``.
        maximum: The configured ceiling.
    """

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        *,
        backend: str,
        template: str,
        limit: str,
        maximum: int,
        cause: BaseException | None = None,
        document: int | None = None,
    ) -> None:
        """Initialize with error message and the exceeded ceiling."""
        super().__init__(
            message,
            backend=backend,
            template=template,
            cause=cause,
            document=document,
        )
        self.limit: str = limit
        self.maximum: int = maximum


class ConversionCancelledError(ConversionError):
    """Raised when the caller cancels a conversion in progress."""


class DeadlineExceededError(ConversionError):
    """Raised when a conversion runs past its deadline."""


# =============================================================================
# Script Exceptions
# =============================================================================


class ScriptError(TmplconvError):
    """Raised when a script fails to parse or evaluate."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        """Initialize with error message and optional source line."""
        super().__init__(message)
        self.line: int | None = line


class ScriptLimitError(ScriptError):
    """Raised when a script exceeds an execution ceiling."""

    def __init__(
        self,
        message: str,
        *,
        limit: str,
        maximum: int,
        line: int | None = None,
    ) -> None:
        """Initialize with error message and the exceeded ceiling."""
        super().__init__(message, line=line)
        self.limit: str = limit
        self.maximum: int = maximum


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(TmplconvError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: object,
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: object = value
        self.expected: str = expected
        self.source: str | None = source
