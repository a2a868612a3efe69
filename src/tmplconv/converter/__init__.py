"""Template expansion for multi-document pipeline configuration.

Basic usage:
    from tmplconv.converter import TemplateConverter

    converter = TemplateConverter(store)
    result = converter.convert(request)
    if result is None:
        ...  # not a YAML file with template documents, use the input as is

The converter splits the input into documents, copies ``kind: pipeline``
documents unchanged and replaces each ``kind: template`` document with the
expansion of the stored template it loads.
"""

from tmplconv.converter._converter import (
    DOCUMENT_MARKER,
    Segment,
    TemplateConverter,
    join_segments,
)
from tmplconv.converter._dispatcher import Dispatcher
from tmplconv.converter._gate import CONFIG_EXTENSIONS, TEMPLATE_KIND_RE, is_applicable
from tmplconv.converter._reference import TemplateReference, extract_reference
from tmplconv.converter._resolver import resolve_template
from tmplconv.converter._stream import (
    Document,
    DocumentKind,
    classify,
    iter_documents,
    split_documents,
)

__all__ = [
    "CONFIG_EXTENSIONS",
    "DOCUMENT_MARKER",
    "TEMPLATE_KIND_RE",
    "Dispatcher",
    "Document",
    "DocumentKind",
    "Segment",
    "TemplateConverter",
    "TemplateReference",
    "classify",
    "extract_reference",
    "is_applicable",
    "iter_documents",
    "join_segments",
    "resolve_template",
    "split_documents",
]
