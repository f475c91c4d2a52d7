"""Tests for docseries.series.allocator.

Covers:
- Sequential numbering from 1
- Uniqueness under concurrent callers (threads and separate databases)
- Self-healing when documents run ahead of the counter
- peek_next() being side-effect free
- Lock timeouts
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from docseries.core.errors import AllocationTimedOut
from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.core.uow import Database
from docseries.series.allocator import SequenceAllocator
from docseries.series.ledger import DocumentRepository
from docseries.series.store import SeriesStore


@pytest.fixture
def allocator(database) -> SequenceAllocator:
    return SequenceAllocator(database, KeyLockTable(), lock_timeout=5.0)


def _record_document(database: Database, key: HierarchicalKey, number: int) -> None:
    with database.transaction() as conn:
        series_id = SeriesStore(conn, database.dialect).ensure(key)
        DocumentRepository(conn, database.dialect).insert_document(key, number, series_id, f"legacy-{number}")


def _series_count(database: Database) -> int:
    with database.transaction(read_only=True) as conn:
        return int(conn.execute("SELECT COUNT(*) FROM code_series").fetchone()[0])


class TestNextCandidate:
    @pytest.mark.parametrize(
        ("next_number", "observed", "expected"),
        [(1, None, 1), (5, None, 5), (10, 50, 51), (51, 50, 51), (60, 50, 60), (1, 0, 1)],
    )
    def test_rule(self, next_number, observed, expected):
        assert SequenceAllocator.next_candidate(next_number, observed) == expected


class TestAllocate:
    def test_fresh_key_starts_at_one(self, allocator, key):
        first = allocator.allocate(key)
        second = allocator.allocate(key)
        assert (first.number, second.number) == (1, 2)
        assert first.series_id == second.series_id

    def test_creates_series_row(self, allocator, database, key):
        allocator.allocate(key)
        with database.transaction(read_only=True) as conn:
            assert SeriesStore(conn, database.dialect).find(key).next_number == 2

    def test_equivalent_keys_share_a_counter(self, allocator, key):
        allocator.allocate(key)
        assert allocator.allocate(HierarchicalKey.of(1, "dft", " gov", "REG ")).number == 2

    def test_keys_are_independent(self, allocator, key):
        allocator.allocate(key)
        assert allocator.allocate(HierarchicalKey.of(1, "DFT", "GOV", "FIN")).number == 1
        assert allocator.allocate(HierarchicalKey.of(2, "DFT", "GOV", "REG")).number == 1

    def test_heals_counter_behind_documents(self, allocator, database, key):
        with database.transaction() as conn:
            SeriesStore(conn, database.dialect).upsert(key, None, 10)
        _record_document(database, key, 50)

        assert allocator.allocate(key).number == 51
        assert allocator.allocate(key).number == 52

    def test_counter_ahead_of_documents_wins(self, allocator, database, key):
        _record_document(database, key, 3)
        with database.transaction() as conn:
            SeriesStore(conn, database.dialect).upsert(key, None, 40)
        assert allocator.allocate(key).number == 40

    def test_custom_ledger(self, database, key):
        class FixedLedger:
            def max_number(self, key):
                return 99

            def exists(self, key):
                return True

        allocator = SequenceAllocator(database, KeyLockTable(), ledger_factory=lambda conn: FixedLedger())
        assert allocator.allocate(key).number == 100
        assert allocator.peek_next(key) == 101

    def test_key_lock_timeout(self, database, key):
        locks = KeyLockTable()
        allocator = SequenceAllocator(database, locks, lock_timeout=0.05)
        with locks.hold(key):
            with pytest.raises(AllocationTimedOut):
                allocator.allocate(key)
        assert _series_count(database) == 0


class TestConcurrency:
    def test_threads_get_unique_consecutive_numbers(self, allocator, key):
        with ThreadPoolExecutor(max_workers=8) as pool:
            numbers = list(pool.map(lambda _: allocator.allocate(key).number, range(40)))
        assert sorted(numbers) == list(range(1, 41))

    def test_two_callers_on_fresh_key(self, allocator, key):
        with ThreadPoolExecutor(max_workers=2) as pool:
            numbers = {f.result().number for f in [pool.submit(allocator.allocate, key) for _ in range(2)]}
        assert numbers == {1, 2}

    def test_separate_lock_tables_rely_on_database(self, db_url, database, key):
        # Two "processes": independent engines and lock tables on one file
        other = Database.from_url(db_url, lock_timeout=5.0)
        try:
            allocators = [
                SequenceAllocator(database, KeyLockTable()),
                SequenceAllocator(other, KeyLockTable()),
            ]
            with ThreadPoolExecutor(max_workers=4) as pool:
                numbers = list(pool.map(lambda i: allocators[i % 2].allocate(key).number, range(20)))
        finally:
            other.dispose()
        assert sorted(numbers) == list(range(1, 21))


class TestPeekNext:
    def test_missing_series(self, allocator, key):
        assert allocator.peek_next(key) == 1

    def test_does_not_create_series(self, allocator, database, key):
        allocator.peek_next(key)
        assert _series_count(database) == 0

    def test_stable_until_allocate(self, allocator, key):
        allocator.allocate(key)
        assert allocator.peek_next(key) == 2
        assert allocator.peek_next(key) == 2
        assert allocator.allocate(key).number == 2
        assert allocator.peek_next(key) == 3

    def test_reflects_documents_ahead_of_counter(self, allocator, database, key):
        _record_document(database, key, 50)
        assert allocator.peek_next(key) == 51

    def test_not_blocked_by_key_lock(self, database, key):
        locks = KeyLockTable()
        allocator = SequenceAllocator(database, locks, lock_timeout=0.05)
        with locks.hold(key):
            assert allocator.peek_next(key) == 1
