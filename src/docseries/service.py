"""
``DocSeries``: the library façade over allocator, store, reconciler and codec.

One instance per process (or per database).  It owns the single
:class:`~docseries.core.locks.KeyLockTable` every component shares, which
is what makes per-key exclusion hold across allocate, upsert and reconcile.

Examples:
    >>> from docseries import DocSeries, HierarchicalKey
    >>> ds = DocSeries.from_url("sqlite:///data/docseries.db")
    >>> ds.init_schema()
    >>> key = HierarchicalKey.of(1, "DFT", "GOV", "REG")
    >>> ds.allocate(key).number
    1
    >>> ds.format_code(key, 7, "Minutes", "pdf")
    'DFT-GOV-REG-007 Minutes.pdf'

Tags:
    docseries, facade, api
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from docseries.core.codec import DEFAULT_FORMAT, CodeFormat, format_code, parse_code
from docseries.core.config import DocSeriesSettings, get_settings
from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.core.logging import get_logger
from docseries.core.models import (
    AllocatedNumber,
    CatalogImportResult,
    DocumentCreation,
    ImportObservation,
    ImportResult,
    ParsedCode,
    SeriesRecord,
)
from docseries.core.uow import Database
from docseries.series.allocator import SequenceAllocator
from docseries.series.documents import DocumentService
from docseries.series.reconciler import ImportReconciler
from docseries.series.store import SeriesStore

logger = get_logger(__name__)


class DocSeries:
    """Allocate, preview, register and reconcile document codes."""

    def __init__(
        self,
        database: Database,
        *,
        fmt: CodeFormat = DEFAULT_FORMAT,
        lock_timeout: float | None = 5.0,
        locks: KeyLockTable | None = None,
    ) -> None:
        self.database = database
        self.fmt = fmt
        self.lock_timeout = lock_timeout
        self.locks = locks or KeyLockTable()

        self.allocator = SequenceAllocator(database, self.locks, lock_timeout)
        self.reconciler = ImportReconciler(database, self.locks, fmt, lock_timeout)
        self.documents = DocumentService(
            database, self.allocator, self.reconciler, self.locks, fmt, lock_timeout
        )

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        fmt: CodeFormat = DEFAULT_FORMAT,
        lock_timeout: float = 5.0,
        echo: bool = False,
    ) -> DocSeries:
        database = Database.from_url(url, lock_timeout=lock_timeout, echo=echo)
        return cls(database, fmt=fmt, lock_timeout=lock_timeout)

    @classmethod
    def from_settings(cls, settings: DocSeriesSettings | None = None) -> DocSeries:
        settings = settings or get_settings()
        database = Database.from_url(
            settings.database_url,
            lock_timeout=settings.lock_timeout_seconds,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
        )
        return cls(
            database,
            fmt=settings.code_format(),
            lock_timeout=settings.lock_timeout_seconds,
        )

    def init_schema(self) -> list[str]:
        return self.database.init_schema()

    def close(self) -> None:
        self.database.dispose()

    # -- Allocation ----------------------------------------------------------

    def allocate(self, key: HierarchicalKey) -> AllocatedNumber:
        return self.allocator.allocate(key)

    def peek_next(self, key: HierarchicalKey) -> int:
        return self.allocator.peek_next(key)

    # -- Series registry -----------------------------------------------------

    def upsert_series(
        self,
        key: HierarchicalKey,
        description: str | None = None,
        next_number_hint: int | None = None,
    ) -> int:
        """Create or update a series under its key lock; return its id."""
        with self.locks.hold(key, self.lock_timeout):
            with self.database.transaction(operation="upsert_series") as conn:
                return SeriesStore(conn, self.database.dialect).upsert(
                    key, description, next_number_hint
                )

    def get_series(self, scope: int, series_id: int) -> SeriesRecord:
        with self.database.transaction(read_only=True, operation="get_series") as conn:
            return SeriesStore(conn, self.database.dialect).get(scope, series_id)

    def find_series(self, key: HierarchicalKey) -> SeriesRecord | None:
        with self.database.transaction(read_only=True, operation="find_series") as conn:
            return SeriesStore(conn, self.database.dialect).find(key)

    def list_series(self, scope: int) -> list[SeriesRecord]:
        with self.database.transaction(read_only=True, operation="list_series") as conn:
            return SeriesStore(conn, self.database.dialect).list(scope)

    def delete_series(self, scope: int, series_id: int) -> None:
        """Delete an unreferenced series.

        Raises:
            SeriesNotFound: no such series in ``scope``.
            SeriesInUse: documents still reference it.
        """
        record = self.get_series(scope, series_id)
        with self.locks.hold(record.key, self.lock_timeout):
            with self.database.transaction(operation="delete_series") as conn:
                SeriesStore(conn, self.database.dialect).delete(scope, series_id)

    # -- Import --------------------------------------------------------------

    def reconcile_import(self, scope: int, observations: Iterable[ImportObservation]) -> int:
        return self.reconciler.reconcile(scope, observations)

    def import_file_names(self, scope: int, names: Iterable[str], seed: bool = True) -> ImportResult:
        return self.reconciler.import_file_names(scope, names, seed)

    def import_code_lines(
        self, scope: int, lines: Iterable[str], created_by: str | None = None
    ) -> ImportResult:
        return self.documents.import_code_lines(scope, lines, created_by)

    def import_catalog(self, scope: int, rows: Iterable[Sequence[str]]) -> CatalogImportResult:
        """Register the series of a ``(level, code[, description])`` catalog."""
        return self.reconciler.import_catalog(scope, rows)

    # -- Documents -----------------------------------------------------------

    def create_document(
        self,
        key: HierarchicalKey,
        free_text: str | None = "",
        extension: str | None = None,
        created_by: str | None = None,
    ) -> DocumentCreation:
        return self.documents.create_document(key, free_text, extension, created_by)

    # -- Codec ---------------------------------------------------------------

    def format_code(
        self,
        key: HierarchicalKey,
        number: int,
        free_text: str | None = "",
        extension: str | None = None,
    ) -> str:
        return format_code(key, number, free_text, extension, self.fmt)

    def parse_code(self, raw: str, scope: int = 0) -> ParsedCode:
        return parse_code(raw, self.fmt, scope)


__all__ = [
    "DocSeries",
]
