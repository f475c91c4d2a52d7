"""In-process lock table keyed by normalised series key.

Every mutation of a series row happens while holding the lock for its
``(scope, normalized_key)``.  The lock table gives per-key mutual exclusion
inside one process.  The database transaction (``BEGIN IMMEDIATE`` /
``FOR UPDATE``) gives it across processes.

Entries are reference counted and removed as soon as no thread holds or
waits on them, so the table only ever contains keys that are in use.

Architecture::

    KeyLockTable
    ├── _guard: threading.Lock          protects _entries
    └── _entries: {(scope, normalized): _Entry(lock, refs)}

    hold(key, timeout)          one key
    hold_many(keys, timeout)    several keys, acquired in sorted order

Examples:
    >>> locks = KeyLockTable()
    >>> with locks.hold(HierarchicalKey.of(1, "DFT", "GOV"), timeout=5.0):
    ...     ...  # read, compute and persist the next number

Guardrails:
    ❌ DON'T: Acquire several keys in caller order
    ✅ DO: Use hold_many(), which sorts by normalised key

Tags:
    locks, concurrency, threading, docseries
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field

from docseries.core.errors import AllocationTimedOut
from docseries.core.keys import HierarchicalKey
from docseries.core.logging import get_logger

logger = get_logger(__name__)

LockId = tuple[int, str]


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    refs: int = 0


class KeyLockTable:
    """Reference-counted table of per-key locks."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[LockId, _Entry] = {}

    @staticmethod
    def lock_id(key: HierarchicalKey) -> LockId:
        return (key.scope, key.normalized)

    def _checkout(self, lock_id: LockId) -> _Entry:
        with self._guard:
            entry = self._entries.get(lock_id)
            if entry is None:
                entry = self._entries[lock_id] = _Entry()
            entry.refs += 1
            return entry

    def _checkin(self, lock_id: LockId, entry: _Entry) -> None:
        with self._guard:
            entry.refs -= 1
            if entry.refs == 0:
                self._entries.pop(lock_id, None)

    @contextmanager
    def hold(self, key: HierarchicalKey, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock for ``key``.

        Raises:
            AllocationTimedOut: when the lock is not acquired within
                ``timeout`` seconds (``None`` waits forever).
        """
        lock_id = self.lock_id(key)
        entry = self._checkout(lock_id)
        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else max(timeout, 0))
            if not acquired:
                logger.warning("key_lock_timeout", scope=key.scope, key=key.display(), timeout=timeout)
                raise AllocationTimedOut(
                    f"Timed out after {timeout}s waiting for series lock {key.display()!r}",
                    timeout=timeout,
                ).with_context(scope=key.scope, key=key.display())
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(lock_id, entry)

    @contextmanager
    def hold_many(
        self, keys: Iterable[HierarchicalKey], timeout: float | None = None
    ) -> Iterator[None]:
        """Hold the locks for every distinct key in ``keys``.

        Locks are taken in ``(scope, normalized)`` order so two batches that
        share keys cannot deadlock.  ``timeout`` bounds the whole acquisition,
        not each lock.
        """
        unique = {self.lock_id(key): key for key in keys}
        deadline = None if timeout is None else time.monotonic() + timeout
        with ExitStack() as stack:
            for lock_id in sorted(unique):
                remaining = None if deadline is None else deadline - time.monotonic()
                stack.enter_context(self.hold(unique[lock_id], remaining))
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


__all__ = [
    "KeyLockTable",
]
