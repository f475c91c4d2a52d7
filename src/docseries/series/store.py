"""
Series store: the registry of code series and their next numbers.

One row per ``(scope, normalized_key)`` in ``code_series``.  The unique
index on the normalised key means equivalent keys ("DFT"/"dft "/...) can
never produce two rows, so readers see exactly one record per key without
any merge step.

The store is bound to one unit of work and takes no in-process locks
itself.  Callers that mutate a row (allocator, reconciler, ``DocSeries``)
hold the key lock from :class:`~docseries.core.locks.KeyLockTable` around
the transaction.

Guardrails:
    ❌ DON'T: Lower next_number on upsert
    ✅ DO: next_number = max(current, hint)

    ❌ DON'T: Clear a description with a blank value
    ✅ DO: Only replace it with a non-blank incoming value

Tags:
    docseries, series, repository, upsert
"""

from __future__ import annotations

from typing import Any

from docseries.core.errors import SeriesInUse, SeriesNotFound
from docseries.core.keys import HierarchicalKey
from docseries.core.logging import get_logger
from docseries.core.models import SeriesRecord
from docseries.core.orm.tables import LEVEL_COLUMNS
from docseries.core.repository import BaseRepository, coerce_datetime

logger = get_logger(__name__)

TABLE = "code_series"
_COLUMNS = "id, scope, " + ", ".join(LEVEL_COLUMNS) + ", description, next_number, created_at"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SeriesStore(BaseRepository):
    """Dialect-aware repository over ``code_series``."""

    # -- Row mapping -------------------------------------------------------

    @staticmethod
    def _to_record(row: dict[str, Any]) -> SeriesRecord:
        return SeriesRecord(
            id=row["id"],
            key=HierarchicalKey.from_row(row["scope"], (row[c] for c in LEVEL_COLUMNS)),
            description=row["description"],
            next_number=row["next_number"],
            created_at=coerce_datetime(row["created_at"]),
        )

    def _insert_if_absent(
        self, key: HierarchicalKey, next_number: int, description: str | None
    ) -> bool:
        columns = ["scope", *LEVEL_COLUMNS, "normalized_key", "description", "next_number"]
        params = (key.scope, *key.levels, key.normalized, description, next_number)
        cursor = self.execute(self.dialect.insert_or_ignore(TABLE, columns), params)
        return getattr(cursor, "rowcount", 0) == 1

    # -- Lookups -----------------------------------------------------------

    def find(self, key: HierarchicalKey) -> SeriesRecord | None:
        row = self.query_one(
            f"SELECT {_COLUMNS} FROM {TABLE} WHERE scope = ? AND normalized_key = ?",
            (key.scope, key.normalized),
        )
        return self._to_record(row) if row else None

    def get(self, scope: int, series_id: int) -> SeriesRecord:
        """Fetch a series by id.

        Raises:
            SeriesNotFound: no such series in ``scope``.
        """
        row = self.query_one(
            f"SELECT {_COLUMNS} FROM {TABLE} WHERE scope = ? AND id = ?",
            (scope, series_id),
        )
        if row is None:
            raise SeriesNotFound(f"Code series {series_id} not found").with_context(
                scope=scope, series_id=series_id
            )
        return self._to_record(row)

    def list(self, scope: int) -> list[SeriesRecord]:
        """All series of a scope ordered by their (case-insensitive) levels."""
        rows = self.query(
            f"SELECT {_COLUMNS} FROM {TABLE} WHERE scope = ? ORDER BY normalized_key, id",
            (scope,),
        )
        return [self._to_record(row) for row in rows]

    def lock_row(self, key: HierarchicalKey) -> tuple[int, int] | None:
        """Read ``(id, next_number)`` holding an exclusive row lock.

        Returns ``None`` when the series does not exist.
        """
        row = self.execute(
            f"SELECT id, next_number FROM {TABLE} "
            f"WHERE scope = ? AND normalized_key = ?{self.dialect.for_update()}",
            (key.scope, key.normalized),
        ).fetchone()
        if row is None:
            return None
        return int(row[0]), int(row[1])

    # -- Mutations ---------------------------------------------------------

    def ensure(self, key: HierarchicalKey) -> int:
        """Create the series with ``next_number = 1`` if absent; return its id."""
        if self._insert_if_absent(key, 1, None):
            logger.debug("series_created", scope=key.scope, key=key.display())
        series_id = self.scalar(
            f"SELECT id FROM {TABLE} WHERE scope = ? AND normalized_key = ?",
            (key.scope, key.normalized),
        )
        return int(series_id)

    def set_next_number(self, series_id: int, next_number: int) -> None:
        self.execute(
            f"UPDATE {TABLE} SET next_number = ?, updated_at = {self.dialect.now()} WHERE id = ?",
            (next_number, series_id),
        )

    def upsert(
        self,
        key: HierarchicalKey,
        description: str | None = None,
        next_number_hint: int | None = None,
    ) -> int:
        """Create or update a series and return its id.

        A new series starts at ``next_number_hint or 1``.  An existing one
        keeps its description unless a non-blank one is supplied, and its
        ``next_number`` only moves forward.
        """
        description = _blank_to_none(description)
        hint = max(next_number_hint, 1) if next_number_hint is not None else None

        if self._insert_if_absent(key, hint or 1, description):
            series_id = self.ensure(key)
            logger.info(
                "series_upserted",
                scope=key.scope,
                key=key.display(),
                series_id=series_id,
                created=True,
                next_number=hint or 1,
            )
            return series_id

        locked = self.lock_row(key)
        if locked is None:
            # Deleted between the insert attempt and the read
            return self.upsert(key, description, next_number_hint)
        series_id, current = locked

        if description is not None:
            self.execute(
                f"UPDATE {TABLE} SET description = ?, updated_at = {self.dialect.now()} WHERE id = ?",
                (description, series_id),
            )
        if hint is not None and hint > current:
            self.set_next_number(series_id, hint)

        logger.info(
            "series_upserted",
            scope=key.scope,
            key=key.display(),
            series_id=series_id,
            created=False,
            next_number=max(current, hint or current),
        )
        return series_id

    def count_documents(self, series_id: int) -> int:
        return int(
            self.scalar("SELECT COUNT(*) FROM documents WHERE series_id = ?", (series_id,)) or 0
        )

    def delete(self, scope: int, series_id: int) -> None:
        """Delete an unreferenced series.

        Raises:
            SeriesNotFound: no such series in ``scope``.
            SeriesInUse: documents still reference the series.
        """
        record = self.get(scope, series_id)
        document_count = self.count_documents(series_id)
        if document_count:
            raise SeriesInUse(series_id, document_count).with_context(
                scope=scope, key=record.key.display(), operation="delete_series"
            )
        self.execute(f"DELETE FROM {TABLE} WHERE scope = ? AND id = ?", (scope, series_id))
        logger.info("series_deleted", scope=scope, series_id=series_id, key=record.key.display())


__all__ = [
    "SeriesStore",
]
