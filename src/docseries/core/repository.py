"""Base repository with dialect-aware database access.

Provides :class:`BaseRepository`, which pairs a
:class:`~docseries.core.protocols.Connection` with a
:class:`~docseries.core.dialect.Dialect` so that the series and document
repositories can write portable SQL.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← bridge handed out by Database          │
    │   dialect: Dialect        ← SQLiteDialect / PostgreSQLDialect      │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    │   scalar(sql, params)      → first column of first row             │
    │   insert(table, data)      → cursor                                │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class SeriesStore(BaseRepository):
    ...     def get(self, scope, series_id):
    ...         return self.query_one(
    ...             "SELECT * FROM code_series WHERE scope = ? AND id = ?",
    ...             (scope, series_id),
    ...         )

Tags:
    repository, database, abstraction, portability
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from docseries.core.dialect import Dialect, SQLiteDialect
from docseries.core.protocols import Connection


class BaseRepository:
    """Dialect-aware base class for data-access repositories.

    Repositories are cheap and bound to one unit of work: build them inside
    ``with database.transaction() as conn`` and drop them when the block
    ends.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect to use.  Defaults to :class:`SQLiteDialect`.
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()

    def ph(self, count: int) -> str:
        """Shortcut for ``self.dialect.placeholders(count)``."""
        return self.dialect.placeholders(count)

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts keyed by column name."""
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if not rows:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row, strict=False)) for row in rows]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def scalar(self, sql: str, params: tuple = ()) -> Any:
        """Execute a SELECT and return the first column of the first row."""
        row = self.conn.execute(sql, params).fetchone()
        return row[0] if row is not None else None

    # -- Insert helpers ----------------------------------------------------

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """Insert a single row from a dict."""
        columns = list(data.keys())
        values = list(data.values())
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({self.ph(len(values))})"
        return self.conn.execute(sql, tuple(values))


def coerce_datetime(value: Any) -> datetime | None:
    """Timestamps come back as ``datetime`` from psycopg and as ISO text from SQLite."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


__all__ = [
    "BaseRepository",
    "coerce_datetime",
]
