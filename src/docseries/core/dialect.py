"""SQL dialect abstraction for the series repositories.

Repositories write one SQL template and ask the ``Dialect`` for the few
fragments that differ between backends: insert-if-absent, row locking,
statement lock timeouts and the current timestamp.

Placeholders are always ``?``.  Statements run through
:class:`~docseries.core.orm.session.SAConnectionBridge`, which rewrites them
into SQLAlchemy named binds, so the driver's own paramstyle never leaks into
repository code.

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                     Dialect Abstraction Layer                     │
    └──────────────────────────────────────────────────────────────────┘

    Repository code:
    ┌────────────────────────────────────────────────────────────────┐
    │  conn.execute(d.insert_or_ignore("code_series", cols), params) │
    │  conn.execute(f"SELECT ... WHERE id = ?{d.for_update()}", ...) │
    └────────────────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌──────────────────────────────┐ ┌───────────────────────────────┐
    │ SQLite                       │ │ PostgreSQL                    │
    │ INSERT OR IGNORE             │ │ ON CONFLICT DO NOTHING        │
    │ no FOR UPDATE (BEGIN IMMED.) │ │ FOR UPDATE                    │
    │ busy timeout on connect      │ │ SET LOCAL lock_timeout        │
    │ datetime('now')              │ │ NOW()                         │
    └──────────────────────────────┘ └───────────────────────────────┘

Examples:
    >>> from docseries.core.dialect import get_dialect
    >>> d = get_dialect("postgresql+psycopg://localhost/docs")
    >>> d.for_update()
    ' FOR UPDATE'
    >>> d.lock_timeout_sql(5000)
    "SET LOCAL lock_timeout = '5000ms'"

Tags:
    dialect, sql, portability, locking, docseries
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (or full statement) that is
    valid for the target database.
    """

    @property
    def name(self) -> str:
        ...

    def placeholders(self, count: int) -> str:
        ...

    def now(self) -> str:
        """SQL expression for the current UTC timestamp."""
        ...

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        """``INSERT`` that silently does nothing on a unique-key conflict."""
        ...

    def for_update(self) -> str:
        """Suffix that takes a row-level exclusive lock on a ``SELECT``.

        Empty where the transaction already holds a database-wide write
        lock.
        """
        ...

    def lock_timeout_sql(self, timeout_ms: int) -> str | None:
        """Statement bounding lock waits for the current transaction.

        ``None`` when the bound is configured on the connection instead.
        """
        ...


class SQLiteDialect:
    """SQLite: ``BEGIN IMMEDIATE`` serialises writers, busy timeout bounds waits."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def now(self) -> str:
        return "datetime('now')"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT OR IGNORE INTO {table} ({cols}) VALUES ({ph})"

    def for_update(self) -> str:
        return ""

    def lock_timeout_sql(self, timeout_ms: int) -> str | None:  # noqa: ARG002
        return None


class PostgreSQLDialect:
    """PostgreSQL: ``SERIALIZABLE`` transactions plus ``FOR UPDATE`` row locks."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def now(self) -> str:
        return "NOW()"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT DO NOTHING"

    def for_update(self) -> str:
        return " FOR UPDATE"

    def lock_timeout_sql(self, timeout_ms: int) -> str | None:
        return f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"


def get_dialect(url: str) -> Dialect:
    """Pick the dialect for a SQLAlchemy database URL.

    Raises:
        InvalidConfig: for backends other than SQLite and PostgreSQL.
    """
    from docseries.core.errors import InvalidConfig

    backend = url.split(":", 1)[0].split("+", 1)[0].lower()
    if backend == "sqlite":
        return SQLiteDialect()
    if backend in ("postgresql", "postgres"):
        return PostgreSQLDialect()
    raise InvalidConfig(f"Unsupported database backend {backend!r} in {url!r}")


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
