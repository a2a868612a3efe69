"""Unit tests for SQLite store construction."""

import pytest

from tmplconv.store import SQLiteTemplateStore


class TestPrivateDatabases:
    @pytest.mark.parametrize("path", [":memory:", ""])
    def test_rejects_per_connection_database(self, path: str) -> None:
        with pytest.raises(ValueError, match="must name a database file"):
            _ = SQLiteTemplateStore(path)
