"""SQLAlchemy engine factory and Connection bridge.

Manifesto:
    Repositories speak the small ``docseries.core.protocols.Connection``
    protocol with ``?`` placeholders.  ``SAConnectionBridge`` adapts a
    SQLAlchemy ``Connection`` (or ``Session``) to that protocol, so the same
    repository code runs on SQLite and PostgreSQL.

This module provides:

* ``create_docseries_engine`` -- engine with per-backend transaction setup.
* ``init_schema``             -- create the docseries tables if missing.
* ``SAConnectionBridge``      -- ``?`` → ``:pN`` rewriting Connection adapter.

SQLite transactions:
    pysqlite's own implicit ``BEGIN`` is disabled on connect and replaced by
    a ``begin`` event listener that emits ``BEGIN IMMEDIATE`` for write
    transactions.  The database write lock is therefore taken before the
    first read, which is what makes read-compute-write on a series row
    safe across processes.  Read-only transactions emit a plain ``BEGIN``.

Tags:
    docseries, orm, sqlalchemy, engine, bridge, connection
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine

from docseries.core.logging import get_logger
from docseries.core.orm.base import DocSeriesBase

logger = get_logger(__name__)

# Execution option consulted by the SQLite ``begin`` listener
READ_ONLY_OPTION = "docseries_read_only"


def create_docseries_engine(
    url: str = "sqlite:///data/docseries.db",
    *,
    echo: bool = False,
    lock_timeout: float = 5.0,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with docseries transaction semantics.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…`` or ``postgresql+psycopg://…``).
    echo:
        If ``True``, log all SQL.
    lock_timeout:
        Seconds a SQLite writer waits on the database lock before failing
        with "database is locked".  PostgreSQL bounds lock waits per
        transaction instead (see ``Database``).
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    """
    if url.startswith("sqlite"):
        connect_args = kwargs.setdefault("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", lock_timeout)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            # Take over transaction control from pysqlite
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(lock_timeout * 1000)}")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_sqlite(conn: Any) -> None:
            if conn.get_execution_options().get(READ_ONLY_OPTION):
                conn.exec_driver_sql("BEGIN")
            else:
                conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow
    kwargs.setdefault("isolation_level", "SERIALIZABLE")

    return _sa_create_engine(url, echo=echo, pool_pre_ping=True, **pool_kwargs, **kwargs)


def init_schema(engine: Engine) -> list[str]:
    """Create missing docseries tables and return the table names."""
    DocSeriesBase.metadata.create_all(engine)
    tables = sorted(DocSeriesBase.metadata.tables)
    logger.info("schema_initialized", url=engine.url.render_as_string(hide_password=True), tables=tables)
    return tables


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Connection`` or ``Session`` look like
    ``docseries.core.protocols.Connection``.

    Implements: ``execute``, ``fetchone``, ``fetchall``, ``rowcount`` and a
    DB-API style ``description``.  Commit and rollback stay with the
    enclosing ``Database.transaction``.
    """

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._last_result: Any = None

    @staticmethod
    def _rewrite(sql: str) -> str:
        # Positional (?, ?) → (:p0, :p1) for SA text()
        rewritten, idx = [], 0
        for ch in sql:
            if ch == "?":
                rewritten.append(f":p{idx}")
                idx += 1
            else:
                rewritten.append(ch)
        return "".join(rewritten)

    # --- execute ---

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> SAConnectionBridge:
        if parameters:
            mapping = {f"p{i}": v for i, v in enumerate(parameters)}
            self._last_result = self._connection.execute(text(self._rewrite(sql)), mapping)
        else:
            self._last_result = self._connection.execute(text(sql))
        return self

    # --- fetch ---

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    @property
    def rowcount(self) -> int:
        if self._last_result is None:
            return 0
        return self._last_result.rowcount

    @property
    def description(self) -> list[tuple[str, ...]] | None:
        """DB-API 2.0 compatible description from the last result."""
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        keys = list(self._last_result.keys())
        return [(k, None, None, None, None, None, None) for k in keys]


__all__ = [
    "READ_ONLY_OPTION",
    "create_docseries_engine",
    "init_schema",
    "SAConnectionBridge",
]
