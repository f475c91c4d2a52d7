"""Document ledger over the ``documents`` table.

Implements the read-only :class:`~docseries.core.protocols.DocumentLedger`
protocol the allocator consults (``max_number`` / ``exists``), plus the
write and admin helpers the document service needs.
"""

from __future__ import annotations

from typing import Any

from docseries.core.keys import HierarchicalKey
from docseries.core.models import DocumentRecord
from docseries.core.orm.tables import LEVEL_COLUMNS
from docseries.core.repository import BaseRepository, coerce_datetime

TABLE = "documents"
_COLUMNS = (
    "id, scope, "
    + ", ".join(LEVEL_COLUMNS)
    + ", number, series_id, file_name, free_text, created_by, created_at"
)


class DocumentRepository(BaseRepository):
    """Dialect-aware repository over ``documents``."""

    @staticmethod
    def _to_record(row: dict[str, Any]) -> DocumentRecord:
        return DocumentRecord(
            id=row["id"],
            key=HierarchicalKey.from_row(row["scope"], (row[c] for c in LEVEL_COLUMNS)),
            number=row["number"],
            series_id=row["series_id"],
            file_name=row["file_name"],
            free_text=row["free_text"],
            created_by=row["created_by"],
            created_at=coerce_datetime(row["created_at"]),
        )

    # -- DocumentLedger ----------------------------------------------------

    def max_number(self, key: HierarchicalKey) -> int | None:
        value = self.scalar(
            f"SELECT MAX(number) FROM {TABLE} WHERE scope = ? AND normalized_key = ?",
            (key.scope, key.normalized),
        )
        return int(value) if value is not None else None

    def exists(self, key: HierarchicalKey) -> bool:
        row = self.execute(
            f"SELECT 1 FROM {TABLE} WHERE scope = ? AND normalized_key = ? LIMIT 1",
            (key.scope, key.normalized),
        ).fetchone()
        return row is not None

    # -- Writes ------------------------------------------------------------

    def number_taken(self, key: HierarchicalKey, number: int) -> bool:
        row = self.execute(
            f"SELECT 1 FROM {TABLE} WHERE scope = ? AND normalized_key = ? AND number = ?",
            (key.scope, key.normalized, number),
        ).fetchone()
        return row is not None

    def insert_document(
        self,
        key: HierarchicalKey,
        number: int,
        series_id: int,
        file_name: str,
        free_text: str | None = None,
        created_by: str | None = None,
    ) -> int:
        """Record a document and return its id."""
        data = {"scope": key.scope}
        data.update(zip(LEVEL_COLUMNS, key.levels, strict=True))
        data.update(
            normalized_key=key.normalized,
            number=number,
            series_id=series_id,
            file_name=file_name,
            free_text=free_text,
            created_by=created_by,
        )
        self.insert(TABLE, data)
        return int(
            self.scalar(
                f"SELECT id FROM {TABLE} WHERE scope = ? AND normalized_key = ? AND number = ?",
                (key.scope, key.normalized, number),
            )
        )

    # -- Admin -------------------------------------------------------------

    def list_recent(self, scope: int, limit: int = 20) -> list[DocumentRecord]:
        rows = self.query(
            f"SELECT {_COLUMNS} FROM {TABLE} WHERE scope = ? ORDER BY id DESC LIMIT ?",
            (scope, limit),
        )
        return [self._to_record(row) for row in rows]

    def purge(self, scope: int) -> int:
        """Delete every document of a scope; returns the number removed."""
        count = int(
            self.scalar(f"SELECT COUNT(*) FROM {TABLE} WHERE scope = ?", (scope,)) or 0
        )
        self.execute(f"DELETE FROM {TABLE} WHERE scope = ?", (scope,))
        return count


__all__ = [
    "DocumentRepository",
]
