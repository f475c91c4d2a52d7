"""Document service: allocate a number, build the file name, record the document.

Also records pre-existing documents found by an import under the number
they already carry, after moving their series counter past it.
"""

from __future__ import annotations

from collections.abc import Iterable

from docseries.core.codec import DEFAULT_FORMAT, CodeFormat, build_code, format_code
from docseries.core.errors import DuplicateDocument, MalformedCode
from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.core.logging import LogContext, get_logger
from docseries.core.models import (
    DocumentCreation,
    DocumentRecord,
    ImportObservation,
    ImportResult,
    InvalidImportEntry,
    ParsedCode,
    SeriesSummary,
)
from docseries.core.uow import Database
from docseries.series.allocator import SequenceAllocator
from docseries.series.ledger import DocumentRepository
from docseries.series.reconciler import ImportReconciler, group_observations
from docseries.series.store import SeriesStore

logger = get_logger(__name__)


class DocumentService:
    def __init__(
        self,
        database: Database,
        allocator: SequenceAllocator,
        reconciler: ImportReconciler,
        locks: KeyLockTable,
        fmt: CodeFormat = DEFAULT_FORMAT,
        lock_timeout: float | None = 5.0,
    ) -> None:
        self.database = database
        self.allocator = allocator
        self.reconciler = reconciler
        self.locks = locks
        self.fmt = fmt
        self.lock_timeout = lock_timeout

    def create_document(
        self,
        key: HierarchicalKey,
        free_text: str | None = "",
        extension: str | None = None,
        created_by: str | None = None,
    ) -> DocumentCreation:
        """Allocate the next number for ``key`` and record a new document.

        The number is burned once allocated, even if recording the document
        fails afterwards.
        """
        allocated = self.allocator.allocate(key)
        code = build_code(key, allocated.number, self.fmt)
        file_name = format_code(key, allocated.number, free_text, extension, self.fmt)

        with self.database.transaction(operation="create_document") as conn:
            document_id = DocumentRepository(conn, self.database.dialect).insert_document(
                key,
                allocated.number,
                allocated.series_id,
                file_name,
                free_text=(free_text or "").strip() or None,
                created_by=created_by,
            )

        logger.info(
            "document_created",
            scope=key.scope,
            code=code,
            document_id=document_id,
            created_by=created_by,
        )
        return DocumentCreation(
            document_id=document_id,
            series_id=allocated.series_id,
            number=allocated.number,
            code=code,
            file_name=file_name,
        )

    def register_existing(
        self,
        scope: int,
        parsed: ParsedCode,
        file_name: str | None = None,
        created_by: str | None = None,
    ) -> int:
        """Record an already-numbered document and return its id.

        Raises:
            MalformedCode: the number is below 1.
            DuplicateDocument: the key already has a document with that number.
        """
        key = HierarchicalKey(scope, parsed.key.levels)
        if parsed.number < 1:
            raise MalformedCode(
                file_name or build_code(key, parsed.number, self.fmt), "Number must be positive"
            ).with_context(scope=scope, key=key.display(), operation="register_existing")
        if file_name is None:
            file_name = format_code(
                key, parsed.number, parsed.trailing_free_text, parsed.extension, self.fmt
            )

        with self.locks.hold(key, self.lock_timeout):
            with self.database.transaction(operation="register_existing") as conn:
                store = SeriesStore(conn, self.database.dialect)
                documents = DocumentRepository(conn, self.database.dialect)

                if documents.number_taken(key, parsed.number):
                    raise DuplicateDocument(
                        f"Document {build_code(key, parsed.number, self.fmt)} already exists"
                    ).with_context(scope=scope, key=key.display(), operation="register_existing")

                series_id = store.upsert(key, next_number_hint=parsed.number + 1)
                document_id = documents.insert_document(
                    key,
                    parsed.number,
                    series_id,
                    file_name,
                    free_text=parsed.trailing_free_text or None,
                    created_by=created_by,
                )

        logger.debug("document_registered", scope=scope, key=key.display(), number=parsed.number)
        return document_id

    def import_code_lines(
        self, scope: int, lines: Iterable[str], created_by: str | None = None
    ) -> ImportResult:
        """Register every ``CODE [file name]`` line as an existing document.

        Malformed lines and duplicates are reported per line; the rest are
        recorded.
        """
        with LogContext(scope=scope, operation="import_code_lines"):
            entries, invalid = self.reconciler.import_code_lines(scope, lines)
            valid: list[ParsedCode] = []
            for entry in entries:
                try:
                    self.register_existing(scope, entry.parsed, entry.file_name, created_by)
                except MalformedCode as e:
                    invalid.append(InvalidImportEntry(raw=entry.raw, reason=e.reason))
                    continue
                except DuplicateDocument as e:
                    invalid.append(InvalidImportEntry(raw=entry.raw, reason=e.message))
                    continue
                valid.append(entry.parsed)

            grouped = group_observations(
                ImportObservation(parsed.key, parsed.number) for parsed in valid
            )
            summaries = [
                SeriesSummary(obs.key, obs.max_number_seen, self.allocator.peek_next(obs.key))
                for obs in grouped
            ]
            logger.info(
                "import_code_lines_done", registered=len(valid), invalid=len(invalid)
            )
        return ImportResult(valid=valid, invalid=invalid, summaries=summaries, seeded=len(grouped))

    def list_recent(self, scope: int, limit: int = 20) -> list[DocumentRecord]:
        with self.database.transaction(read_only=True, operation="list_documents") as conn:
            return DocumentRepository(conn, self.database.dialect).list_recent(scope, limit)

    def purge(self, scope: int) -> int:
        """Delete every document of ``scope``; series and counters stay."""
        with self.database.transaction(operation="purge_documents") as conn:
            removed = DocumentRepository(conn, self.database.dialect).purge(scope)
        logger.warning("documents_purged", scope=scope, removed=removed)
        return removed


__all__ = [
    "DocumentService",
]
