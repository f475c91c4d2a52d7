"""
Sequence allocator: hands out the next number for a hierarchical key.

Manifesto:
    Two callers must never receive the same number for the same key, and a
    counter that fell behind the documents actually recorded must heal
    itself instead of colliding with them.

    - **Per-key total order:** in-process key lock + database row lock
    - **Self-healing:** candidate = max(next_number, max(document) + 1)
    - **Bounded waits:** lock timeout surfaces as AllocationTimedOut
    - **No partial state:** everything happens in one transaction

Architecture:
    ::

        allocate(key)
          │
          ├─ KeyLockTable.hold(key, timeout)       in-process exclusion
          │    └─ Database.transaction()           BEGIN IMMEDIATE / SERIALIZABLE
          │         ├─ SeriesStore.ensure(key)     insert-if-absent, next = 1
          │         ├─ ledger.max_number(key)      observed max (0 if none)
          │         ├─ SeriesStore.lock_row(key)   FOR UPDATE
          │         ├─ candidate = max(next, observed + 1)
          │         └─ set_next_number(candidate + 1)
          │                                        COMMIT
          └─ AllocatedNumber(series_id, candidate)

        peek_next(key)
          └─ Database.transaction(read_only=True)  no key lock, no writes
               └─ max(next or 1, observed + 1)

Examples:
    >>> allocator = SequenceAllocator(database, KeyLockTable(), lock_timeout=5.0)
    >>> allocator.allocate(HierarchicalKey.of(1, "DFT", "GOV", "REG"))
    AllocatedNumber(series_id=1, number=1)
    >>> allocator.peek_next(HierarchicalKey.of(1, "DFT", "GOV", "REG"))
    2

Guardrails:
    ❌ DON'T: Retry on AllocationTimedOut here
    ✅ DO: Surface it; the caller owns the backoff policy

    ❌ DON'T: Create series rows from peek_next()
    ✅ DO: Treat a missing row as next_number = 1

Tags:
    docseries, allocator, sequence, concurrency, locking
"""

from __future__ import annotations

from collections.abc import Callable

from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.core.logging import get_logger
from docseries.core.models import AllocatedNumber
from docseries.core.protocols import Connection, DocumentLedger
from docseries.core.uow import Database
from docseries.series.ledger import DocumentRepository
from docseries.series.store import SeriesStore

logger = get_logger(__name__)

LedgerFactory = Callable[[Connection], DocumentLedger]


class SequenceAllocator:
    """Allocates strictly unique numbers per hierarchical key.

    Parameters:
        database: Unit-of-work provider.
        locks: Shared in-process key lock table.  All allocators, stores and
            reconcilers of one process must share the same table.
        lock_timeout: Seconds to wait for the key lock (``None`` waits
            forever).
        ledger_factory: Builds the :class:`DocumentLedger` for a
            transaction; defaults to :class:`DocumentRepository`.
    """

    def __init__(
        self,
        database: Database,
        locks: KeyLockTable,
        lock_timeout: float | None = 5.0,
        ledger_factory: LedgerFactory | None = None,
    ) -> None:
        self.database = database
        self.locks = locks
        self.lock_timeout = lock_timeout
        self._ledger_factory = ledger_factory or (
            lambda conn: DocumentRepository(conn, database.dialect)
        )

    @staticmethod
    def next_candidate(next_number: int, observed_max: int | None) -> int:
        """Smallest number that is both unused by documents and not behind the counter."""
        return max(next_number, (observed_max or 0) + 1)

    def allocate(self, key: HierarchicalKey) -> AllocatedNumber:
        """Reserve and return the next number for ``key``.

        Raises:
            AllocationTimedOut: key lock or database lock not acquired in time.
            StorageUnavailable: driver failure; nothing was persisted.
        """
        with self.locks.hold(key, self.lock_timeout):
            with self.database.transaction(operation="allocate") as conn:
                store = SeriesStore(conn, self.database.dialect)
                ledger = self._ledger_factory(conn)

                store.ensure(key)
                observed_max = ledger.max_number(key)
                series_id, next_number = store.lock_row(key)
                candidate = self.next_candidate(next_number, observed_max)
                store.set_next_number(series_id, candidate + 1)

        if candidate != next_number:
            logger.warning(
                "series_counter_healed",
                scope=key.scope,
                key=key.display(),
                stored_next=next_number,
                observed_max=observed_max,
                number=candidate,
            )
        logger.info(
            "series_allocated",
            scope=key.scope,
            key=key.display(),
            series_id=series_id,
            number=candidate,
        )
        return AllocatedNumber(series_id=series_id, number=candidate)

    def peek_next(self, key: HierarchicalKey) -> int:
        """Number the next :meth:`allocate` would return, without reserving it.

        May under-report relative to a racing allocate, never over-reports.
        """
        with self.database.transaction(read_only=True, operation="peek_next") as conn:
            store = SeriesStore(conn, self.database.dialect)
            ledger = self._ledger_factory(conn)

            observed_max = ledger.max_number(key)
            record = store.find(key)

        next_number = record.next_number if record is not None else 1
        return self.next_candidate(next_number, observed_max)


__all__ = [
    "SequenceAllocator",
]
