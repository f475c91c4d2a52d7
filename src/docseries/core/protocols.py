"""
Protocol definitions for docseries.

Protocols define contracts without inheritance: repositories depend on the
shape of a connection, and the allocator depends on the shape of a document
ledger, never on a concrete driver or table.

Architecture:
    ::

        protocols.py
        ├── Connection       sync DB protocol (SAConnectionBridge, sqlite3)
        └── DocumentLedger   read-only view of existing document numbers

    Consumers:
        repository.py, series/store.py, series/ledger.py,
        series/allocator.py

Guardrails:
    ❌ DON'T: Import SQLAlchemy or sqlite3 in series code
    ✅ DO: Accept a Connection and let the bridge deal with the driver

    ❌ DON'T: Let the allocator write through a DocumentLedger
    ✅ DO: Keep the ledger read-only; documents are inserted by DocumentService

Tags:
    protocol, connection, ledger, database, docseries
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from docseries.core.keys import HierarchicalKey


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for database operations.

    Statements use ``?`` positional placeholders.  Transaction boundaries
    belong to :class:`~docseries.core.uow.Database`, so repositories never
    call ``commit`` themselves.

    Examples:
        >>> conn.execute("SELECT next_number FROM code_series WHERE id = ?", (1,))
        >>> row = conn.fetchone()
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...


@runtime_checkable
class DocumentLedger(Protocol):
    """
    Read access to documents already recorded under a key.

    The allocator consults it so that a series counter lagging behind
    existing documents (manual inserts, partial imports) can never hand out
    a number that is already taken.
    """

    def max_number(self, key: HierarchicalKey) -> int | None:
        """Highest recorded number for the normalised key, or ``None``."""
        ...

    def exists(self, key: HierarchicalKey) -> bool:
        """Whether any document is recorded for the normalised key."""
        ...


__all__ = [
    "Connection",
    "DocumentLedger",
]
