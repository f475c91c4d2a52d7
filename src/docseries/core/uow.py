"""
Unit of work: one transaction on one pooled connection.

Every series operation runs inside ``Database.transaction()``.  The block
either commits as a whole or rolls back as a whole, and driver exceptions
never escape it untranslated.

Manifesto:
    - **One boundary:** BEGIN, lock timeout, COMMIT/ROLLBACK live here only
    - **Typed failures:** lock waits become AllocationTimedOut, everything
      else from the driver becomes StorageUnavailable (after rollback)
    - **Backend parity:** SQLite ``BEGIN IMMEDIATE`` and PostgreSQL
      ``SERIALIZABLE`` + ``FOR UPDATE`` give the same guarantees to the
      repositories above

Architecture:
    ::

        with database.transaction() as conn:        # BEGIN [IMMEDIATE]
            SET LOCAL lock_timeout (PostgreSQL)
            store = SeriesStore(conn, database.dialect)
            ...                                     # repository calls
                                                    # COMMIT on exit
        DBAPIError ──► ROLLBACK ──► translate_db_error() ──► DocSeriesError

Examples:
    >>> database = Database.from_url("sqlite:///data/docseries.db")
    >>> database.init_schema()
    >>> with database.transaction() as conn:
    ...     SeriesStore(conn, database.dialect).ensure(key)

Tags:
    docseries, unit-of-work, transactions, sqlalchemy, error-translation
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError

from docseries.core.dialect import Dialect, get_dialect
from docseries.core.errors import (
    AllocationTimedOut,
    DocSeriesError,
    ErrorCategory,
    StorageUnavailable,
)
from docseries.core.logging import get_logger
from docseries.core.orm.session import (
    READ_ONLY_OPTION,
    SAConnectionBridge,
    create_docseries_engine,
    init_schema,
)

logger = get_logger(__name__)

# lock_not_available, serialization_failure, deadlock_detected
_PG_LOCK_STATES = frozenset({"55P03", "40001", "40P01"})
_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_lock_error(exc: DBAPIError) -> bool:
    """Whether a driver error means "gave up waiting for a lock"."""
    if _sqlstate(exc) in _PG_LOCK_STATES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _SQLITE_LOCK_MESSAGES)


def translate_db_error(
    exc: DBAPIError, *, timeout: float | None = None, operation: str | None = None
) -> DocSeriesError:
    """Map a SQLAlchemy driver error onto the docseries error hierarchy."""
    if is_lock_error(exc):
        error: DocSeriesError = AllocationTimedOut(
            f"Database lock wait exceeded: {exc.orig}", timeout=timeout, cause=exc
        )
    elif isinstance(exc, IntegrityError):
        error = DocSeriesError(
            f"Constraint violated: {exc.orig}",
            category=ErrorCategory.CONSTRAINT,
            retryable=False,
            cause=exc,
        )
    else:
        error = StorageUnavailable(f"Database error: {exc.orig}", cause=exc)
    if operation:
        error.with_context(operation=operation)
    return error


class Database:
    """Engine plus dialect plus transaction policy.

    Parameters:
        engine: Engine from :func:`create_docseries_engine`.
        lock_timeout: Seconds any statement may wait on a row or database
            lock before the transaction fails with ``AllocationTimedOut``.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        lock_timeout: float = 5.0,
        dialect: Dialect | None = None,
    ) -> None:
        self.engine = engine
        self.lock_timeout = lock_timeout
        self.dialect: Dialect = dialect or get_dialect(engine.dialect.name)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        lock_timeout: float = 5.0,
        echo: bool = False,
        pool_size: int | None = None,
    ) -> Database:
        engine = create_docseries_engine(
            url, echo=echo, lock_timeout=lock_timeout, pool_size=pool_size
        )
        return cls(engine, lock_timeout=lock_timeout)

    def init_schema(self) -> list[str]:
        """Create missing tables."""
        try:
            return init_schema(self.engine)
        except DBAPIError as e:
            raise translate_db_error(e, operation="init_schema") from e

    @contextmanager
    def transaction(
        self, *, read_only: bool = False, operation: str | None = None
    ) -> Iterator[SAConnectionBridge]:
        """Run the block in one transaction and yield a Connection bridge.

        Commits when the block exits normally; rolls back on any exception.
        Non-driver exceptions (e.g. ``SeriesInUse``) propagate unchanged.
        """
        try:
            with self.engine.connect() as connection:
                connection.execution_options(**{READ_ONLY_OPTION: read_only})
                with connection.begin():
                    statement = self.dialect.lock_timeout_sql(int(self.lock_timeout * 1000))
                    if statement:
                        connection.exec_driver_sql(statement)
                    yield SAConnectionBridge(connection)
        except DBAPIError as e:
            error = translate_db_error(e, timeout=self.lock_timeout, operation=operation)
            logger.warning(
                "transaction_rolled_back",
                operation=operation,
                error_type=type(error).__name__,
                detail=str(e.orig),
            )
            raise error from e

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = [
    "Database",
    "is_lock_error",
    "translate_db_error",
]
