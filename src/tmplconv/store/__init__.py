"""Template stores.

The converter depends only on the TemplateStore protocol. Three
implementations are provided:

Classes:
    InMemoryTemplateStore: Dict-backed store for tests and embedding.
    FileSystemTemplateStore: Reads ``<root>/<namespace>/<name><ext>`` files.
    SQLiteTemplateStore: Persists templates in a SQLite database.

Example:
    >>> from tmplconv.store import InMemoryTemplateStore
    >>> store = InMemoryTemplateStore()
    >>> _ = store.add("octocat", "plugin.star", "def main(ctx):\\n  return {}")
"""

from tmplconv.store._filesystem import FileSystemTemplateStore
from tmplconv.store._memory import InMemoryTemplateStore
from tmplconv.store._models import Template
from tmplconv.store._protocol import TemplateStore
from tmplconv.store._sqlite import SQLiteTemplateStore

__all__ = [
    "FileSystemTemplateStore",
    "InMemoryTemplateStore",
    "SQLiteTemplateStore",
    "Template",
    "TemplateStore",
]
