"""SQLite-backed template store.

Persists templates in a ``templates`` table keyed by (namespace, name). Besides
the read path the converter uses, it offers the management operations a host
needs to maintain the templates.
"""

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

import pendulum

from tmplconv.context import ConversionContext
from tmplconv.exceptions import StoreError, TemplateNotFoundError
from tmplconv.store._models import Template
from tmplconv.utils import create_null_logger
from tmplconv.utils.database import connect, fetch_all, fetch_one, insert, safe_identifier

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

_TABLE = safe_identifier("templates")

_SQLITE_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    namespace TEXT NOT NULL,
    extension TEXT NOT NULL DEFAULT '',
    data TEXT NOT NULL DEFAULT '',
    created INTEGER NOT NULL DEFAULT 0,
    updated INTEGER NOT NULL DEFAULT 0,
    UNIQUE (namespace, name)
);
"""

_COLUMNS = "name, namespace, extension, data, created, updated"

_SQL_SELECT_BY_NAME = (
    f"SELECT {_COLUMNS} FROM {_TABLE} WHERE namespace = ? AND name = ?"  # noqa: S608
)
_SQL_SELECT_NAMESPACE = (
    f"SELECT {_COLUMNS} FROM {_TABLE} WHERE namespace = ? ORDER BY name"  # noqa: S608
)
_SQL_SELECT_ALL = f"SELECT {_COLUMNS} FROM {_TABLE} ORDER BY namespace, name"  # noqa: S608
_SQL_UPDATE = (
    f"UPDATE {_TABLE} SET extension = ?, data = ?, updated = ? "  # noqa: S608
    "WHERE namespace = ? AND name = ?"
)
_SQL_DELETE = f"DELETE FROM {_TABLE} WHERE namespace = ? AND name = ?"  # noqa: S608

# Upper bound on how long a lookup waits for a database lock
_DEFAULT_LOCK_TIMEOUT = 30.0

# Paths sqlite3 opens as a fresh database on every connection
_PRIVATE_DATABASES = frozenset({":memory:", ""})


class SQLiteTemplateStore:
    """SQLite-backed implementation of TemplateStore.

    Lookups honor the calling context: the lock timeout is clamped to the
    remaining deadline and a progress handler interrupts a running query once
    the context is cancelled or expired.
    """

    _db_path: str
    _logger: "FilteringBoundLogger"  # noqa: UP037

    def __init__(
        self,
        db_path: str | Path,
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the store, creating the database and schema if needed.

        Args:
            db_path: Path to the SQLite database file.
            logger: Optional logger for debug-level operation logging.

        Raises:
            ValueError: If ``db_path`` names a private in-memory or temporary
                database, which each new connection would see empty.
        """
        if str(db_path) in _PRIVATE_DATABASES:
            msg = f"db_path must name a database file, got {str(db_path)!r}"
            raise ValueError(msg)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_path = str(db_path)
        self._logger = logger if logger is not None else create_null_logger()
        with connect(self._db_path) as conn:
            _ = conn.executescript(_SQLITE_SCHEMA)

    def find_by_name(
        self,
        context: ConversionContext,
        name: str,
        namespace: str,
    ) -> Template:
        """Look up a template by name within a namespace.

        Raises:
            TemplateNotFoundError: If no row matches.
            ConversionCancelledError: If the context is cancelled mid-query.
            DeadlineExceededError: If the deadline passes mid-query.
            sqlite3.Error: For any other database failure.
        """
        context.check()
        remaining = context.remaining()
        timeout = (
            _DEFAULT_LOCK_TIMEOUT if remaining is None else min(remaining, _DEFAULT_LOCK_TIMEOUT)
        )
        try:
            with connect(
                self._db_path,
                timeout=timeout,
                isolation_level="DEFERRED",
                interrupt=context.expired,
            ) as conn:
                template = fetch_one(conn, Template, _SQL_SELECT_BY_NAME, (namespace, name))
        except sqlite3.OperationalError:
            # An interrupted query surfaces as OperationalError
            context.check()
            raise

        self._logger.debug(
            "store_find", name=name, namespace=namespace, found=template is not None
        )
        if template is None:
            msg = f"template {name!r} not found in namespace {namespace!r}"
            raise TemplateNotFoundError(msg, name=name, namespace=namespace)
        return template

    def list_namespace(self, namespace: str) -> list[Template]:
        """List templates in a namespace, ordered by name."""
        with connect(self._db_path, isolation_level="DEFERRED") as conn:
            return fetch_all(conn, Template, _SQL_SELECT_NAMESPACE, (namespace,))

    def list_all(self) -> list[Template]:
        """List every template, ordered by namespace and name."""
        with connect(self._db_path, isolation_level="DEFERRED") as conn:
            return fetch_all(conn, Template, _SQL_SELECT_ALL)

    def create(self, template: Template) -> Template:
        """Insert a new template, stamping its creation time.

        Returns:
            The stored template with ``created`` and ``updated`` set.

        Raises:
            StoreError: If a template with that name already exists.
        """
        now = pendulum.now("UTC").int_timestamp
        stored = template.model_copy(update={"created": now, "updated": now})
        try:
            with connect(self._db_path) as conn:
                _ = insert(conn, "templates", stored)
        except sqlite3.IntegrityError as e:
            msg = (
                f"template {template.name!r} already exists in namespace "
                f"{template.namespace!r}"
            )
            raise StoreError(msg, cause=e) from e
        self._logger.debug("store_create", name=stored.name, namespace=stored.namespace)
        return stored

    def update(self, template: Template) -> Template:
        """Replace the body and extension of an existing template.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        now = pendulum.now("UTC").int_timestamp
        with connect(self._db_path) as conn:
            cursor = conn.execute(
                _SQL_UPDATE,
                (template.extension, template.data, now, template.namespace, template.name),
            )
            if cursor.rowcount == 0:
                msg = (
                    f"template {template.name!r} not found in namespace "
                    f"{template.namespace!r}"
                )
                raise TemplateNotFoundError(
                    msg, name=template.name, namespace=template.namespace
                )
            stored = fetch_one(
                conn, Template, _SQL_SELECT_BY_NAME, (template.namespace, template.name)
            )
        self._logger.debug("store_update", name=template.name, namespace=template.namespace)
        return stored if stored is not None else template

    def delete(self, namespace: str, name: str) -> bool:
        """Delete a template.

        Returns:
            True if a template was deleted, False if none existed.
        """
        with connect(self._db_path) as conn:
            cursor = conn.execute(_SQL_DELETE, (namespace, name))
            deleted = cursor.rowcount > 0
        self._logger.debug("store_delete", name=name, namespace=namespace, deleted=deleted)
        return deleted
