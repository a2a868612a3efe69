"""SQLite helpers for Pydantic-backed tables.

Rows are mapped onto Pydantic models by column name. Only the operations the
template store needs are provided.
"""

import re
import sqlite3
from contextlib import contextmanager, suppress
from typing import TYPE_CHECKING, Literal, TypeAlias, TypeVar, cast

from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

# Valid SQL identifier pattern (alphanumeric and underscores, not starting with digit)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Number of SQLite VM instructions between progress handler calls
_PROGRESS_INTERVAL = 1000

T = TypeVar("T", bound=BaseModel)

SQLValue: TypeAlias = str | int | float | bytes | None

IsolationLevel: TypeAlias = Literal["DEFERRED", "EXCLUSIVE", "IMMEDIATE"] | None


@contextmanager
def connect(
    path: str,
    *,
    timeout: float = 30.0,
    isolation_level: IsolationLevel = "IMMEDIATE",
    wal_mode: bool = True,
    interrupt: "Callable[[], bool] | None" = None,  # noqa: UP037
) -> "Iterator[sqlite3.Connection]":  # noqa: UP037
    """Context manager for SQLite connections with automatic transaction handling.

    Commits on success, rolls back and re-raises on any exception, and always
    closes the connection.

    Args:
        path: Database file path, or ``:memory:``.
        timeout: Seconds to wait for a lock before raising OperationalError.
        isolation_level: Transaction isolation level.
        wal_mode: If True, enable WAL journal mode for file databases.
        interrupt: Optional predicate polled while statements run. Returning
            True aborts the running statement with
            ``sqlite3.OperationalError("interrupted")``.

    Yields:
        SQLite connection with row_factory set to sqlite3.Row.
    """
    conn = sqlite3.connect(path, timeout=timeout, isolation_level=isolation_level)
    conn.row_factory = sqlite3.Row

    if wal_mode and path != ":memory:" and not path.startswith("file:"):
        with suppress(sqlite3.OperationalError):
            _ = conn.execute("PRAGMA journal_mode=WAL")
        _ = conn.execute("PRAGMA busy_timeout=10000")

    if interrupt is not None:
        conn.set_progress_handler(lambda: int(interrupt()), _PROGRESS_INTERVAL)

    try:
        yield conn
        conn.commit()
    except BaseException:
        with suppress(Exception):
            conn.rollback()
        raise
    finally:
        conn.close()


def safe_identifier(name: str) -> str:
    """Validate and quote a SQL identifier.

    Raises:
        ValueError: If the identifier contains invalid characters.

    Examples:
        >>> safe_identifier("templates")
        '"templates"'
        >>> safe_identifier("123abc")
        Traceback (most recent call last):
            ...
        ValueError: Invalid SQL identifier: '123abc'
    """
    if not _IDENTIFIER_RE.fullmatch(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise ValueError(msg)
    return f'"{name}"'


def fetch_one(
    conn: sqlite3.Connection,
    model: type[T],
    sql: str,
    params: tuple[SQLValue, ...] = (),
) -> T | None:
    """Fetch a single row as a Pydantic model, or None if no row matches."""
    row = cast("sqlite3.Row | None", conn.execute(sql, params).fetchone())
    if row is None:
        return None
    return model.model_validate(dict(row))


def fetch_all(
    conn: sqlite3.Connection,
    model: type[T],
    sql: str,
    params: tuple[SQLValue, ...] = (),
) -> list[T]:
    """Fetch all rows as Pydantic models."""
    rows = cast("list[sqlite3.Row]", conn.execute(sql, params).fetchall())
    return [model.model_validate(dict(row)) for row in rows]


def insert(
    conn: sqlite3.Connection,
    table: str,
    obj: BaseModel,
    exclude: set[str] | None = None,
) -> int:
    """Insert a model into a table.

    Fields with ``None`` values are left out of the statement.

    Returns:
        The lastrowid of the inserted row, or 0 if not available.

    Raises:
        sqlite3.IntegrityError: If a unique constraint is violated.
    """
    table = safe_identifier(table)
    data = obj.model_dump(exclude=exclude or set(), exclude_none=True)
    cols = ", ".join(safe_identifier(k) for k in data)
    placeholders = ", ".join(f":{k}" for k in data)
    cursor = conn.execute(
        f"INSERT INTO {table} ({cols}) VALUES ({placeholders})",  # noqa: S608
        data,
    )
    return cursor.lastrowid or 0
