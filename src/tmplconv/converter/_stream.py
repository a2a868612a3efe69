"""Splitting a multi-document YAML stream into classified documents.

Documents are decoded one at a time with a loader that records where each
document ends in the input. Spans are taken from the input itself, so a
document's ``raw`` text is exactly the characters it was decoded from and
consecutive spans tile the whole input.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, cast

import yaml
from yaml.nodes import Node

from tmplconv.exceptions import DocumentSyntaxError, UnsupportedKindError


class DocumentKind(StrEnum):
    """Document kinds the converter understands."""

    PIPELINE = "pipeline"
    TEMPLATE = "template"


@dataclass(slots=True, frozen=True)
class Document:
    """One decoded document of a configuration stream.

    Attributes:
        index: Zero-based position in the stream.
        start: Offset of the first character of the span in the input.
        end: Offset one past the last character of the span.
        raw: The span text, ``data[start:end]``.
        value: The decoded mapping.
        kind: The document's ``kind``.
    """

    index: int
    start: int
    end: int
    raw: str
    value: dict[str, Any] = field(repr=False)  # pyright: ignore[reportExplicitAny]
    kind: DocumentKind


class _SpanLoader(yaml.SafeLoader):
    """SafeLoader that remembers the input offset where each document ends."""

    document_end: int

    def __init__(self, stream: str) -> None:
        super().__init__(stream)
        self.document_end = 0

    def compose_document(self) -> Node | None:  # pyright: ignore[reportIncompatibleMethodOverride]
        _ = self.get_event()
        node = self.compose_node(None, None)  # pyright: ignore[reportArgumentType]
        end_event = self.get_event()
        self.document_end = end_event.end_mark.index
        self.anchors = {}
        return node


def _syntax_error(error: yaml.YAMLError, index: int) -> DocumentSyntaxError:
    mark = getattr(error, "problem_mark", None) or getattr(error, "context_mark", None)
    line = mark.line + 1 if mark is not None else None
    column = mark.column + 1 if mark is not None else None
    location = f" at line {line}, column {column}" if mark is not None else ""
    problem = getattr(error, "problem", None) or str(error)
    msg = f"document {index}: invalid YAML{location}: {problem}"
    return DocumentSyntaxError(msg, document=index, line=line, column=column)


def classify(value: object, index: int) -> DocumentKind:
    """Return the kind of a decoded document.

    Raises:
        DocumentSyntaxError: If the document is empty, not a mapping, or has
            no ``kind``.
        UnsupportedKindError: If ``kind`` is neither pipeline nor template.
    """
    if value is None:
        msg = f"document {index}: document is empty"
        raise DocumentSyntaxError(msg, document=index)
    if not isinstance(value, dict):
        msg = f"document {index}: expected a mapping, got {type(value).__name__}"
        raise DocumentSyntaxError(msg, document=index)
    if "kind" not in value:
        msg = f"document {index}: missing kind"
        raise DocumentSyntaxError(msg, document=index)

    kind: object = value["kind"]
    if isinstance(kind, str):
        try:
            return DocumentKind(kind)
        except ValueError:
            pass
    msg = f"document {index}: unsupported kind {kind!r}"
    raise UnsupportedKindError(msg, kind=kind, document=index)


def iter_documents(data: str) -> Iterator[Document]:
    """Decode and classify each document of ``data`` in order.

    Each document is yielded once the following one has decoded, so the last
    span can run to the end of the input and keep trailing comments and
    whitespace.

    Raises:
        DocumentSyntaxError: On YAML errors or malformed documents.
        UnsupportedKindError: On documents of an unknown kind.
    """
    loader = _SpanLoader(data)
    cursor = 0
    index = 0
    # (end offset, decoded value) of the document not yet yielded
    held: tuple[int, object] | None = None
    try:
        while True:
            try:
                if not loader.check_node():
                    break
                node = loader.get_node()
                value: object = loader.construct_document(node)  # pyright: ignore[reportArgumentType]
            except yaml.YAMLError as e:
                raise _syntax_error(e, index) from e

            if held is not None:
                yield _document(data, index - 1, cursor, held[0], held[1])
                cursor = held[0]
            held = (loader.document_end, value)
            index += 1

        if held is not None:
            yield _document(data, index - 1, cursor, len(data), held[1])
    finally:
        loader.dispose()


def _document(data: str, index: int, start: int, end: int, value: object) -> Document:
    kind = classify(value, index)
    return Document(
        index=index,
        start=start,
        end=end,
        raw=data[start:end],
        value=cast("dict[str, Any]", value),  # pyright: ignore[reportExplicitAny]
        kind=kind,
    )


def split_documents(data: str) -> list[str]:
    """Return the raw span of every document, in order.

    The spans concatenate back to ``data``.
    """
    return [document.raw for document in iter_documents(data)]
