"""Tests for docseries.series.documents: creating and registering documents."""

from __future__ import annotations

import pytest

from docseries.core.codec import CodeFormat, parse_code
from docseries.core.errors import DuplicateDocument, MalformedCode
from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.series.allocator import SequenceAllocator
from docseries.series.documents import DocumentService
from docseries.series.ledger import DocumentRepository
from docseries.series.reconciler import ImportReconciler
from docseries.series.store import SeriesStore


@pytest.fixture
def documents(database) -> DocumentService:
    locks = KeyLockTable()
    fmt = CodeFormat()
    allocator = SequenceAllocator(database, locks)
    reconciler = ImportReconciler(database, locks, fmt)
    return DocumentService(database, allocator, reconciler, locks, fmt)


class TestDocumentRepository:
    def test_exists_before_and_after_insert(self, database, key):
        with database.transaction() as conn:
            ledger = DocumentRepository(conn, database.dialect)
            assert not ledger.exists(key)
            series_id = SeriesStore(conn, database.dialect).upsert(key)
            ledger.insert_document(key, 5, series_id, "DFT-GOV-REG-005")

        with database.transaction(read_only=True) as conn:
            ledger = DocumentRepository(conn, database.dialect)
            assert ledger.exists(key)
            assert ledger.exists(HierarchicalKey.of(1, "dft", " gov ", "Reg"))
            assert not ledger.exists(HierarchicalKey.of(2, "DFT", "GOV", "REG"))
            assert not ledger.exists(HierarchicalKey.of(1, "DFT", "GOV"))
            assert ledger.max_number(HierarchicalKey.of(1, "dft", "gov", "reg")) == 5

    def test_number_taken(self, database, key):
        with database.transaction() as conn:
            ledger = DocumentRepository(conn, database.dialect)
            series_id = SeriesStore(conn, database.dialect).upsert(key)
            ledger.insert_document(key, 2, series_id, "x")
            assert ledger.number_taken(HierarchicalKey.of(1, "dft", "gov", "reg"), 2)
            assert not ledger.number_taken(key, 3)


class TestCreateDocument:
    def test_builds_file_name_and_records(self, documents, key):
        created = documents.create_document(key, "Minutes", "pdf", created_by="alice")
        assert created.number == 1
        assert created.code == "DFT-GOV-REG-001"
        assert created.file_name == "DFT-GOV-REG-001 Minutes.pdf"

        [record] = documents.list_recent(1)
        assert record.id == created.document_id
        assert record.series_id == created.series_id
        assert record.free_text == "Minutes"
        assert record.created_by == "alice"
        assert record.key == key

    def test_numbers_advance(self, documents, key):
        numbers = [documents.create_document(key).number for _ in range(3)]
        assert numbers == [1, 2, 3]

    def test_list_recent_newest_first(self, documents, key):
        for _ in range(3):
            documents.create_document(key)
        assert [d.number for d in documents.list_recent(1, limit=2)] == [3, 2]
        assert documents.list_recent(2) == []


class TestRegisterExisting:
    def test_records_number_and_moves_counter(self, documents, database, key):
        parsed = parse_code("DFT-GOV-REG-017 Old minutes.pdf", CodeFormat(), scope=1)
        documents.register_existing(1, parsed)

        [record] = documents.list_recent(1)
        assert record.number == 17
        assert record.file_name == "DFT-GOV-REG-017 Old minutes.pdf"
        assert documents.allocator.peek_next(key) == 18
        with database.transaction(read_only=True) as conn:
            assert SeriesStore(conn, database.dialect).find(key).next_number == 18

    def test_duplicate_number(self, documents, key):
        parsed = parse_code("DFT-GOV-REG-004", CodeFormat(), scope=1)
        documents.register_existing(1, parsed)
        with pytest.raises(DuplicateDocument):
            documents.register_existing(1, parse_code("dft-gov-reg-004.pdf", CodeFormat(), scope=1))

    def test_older_number_does_not_rewind(self, documents, key):
        documents.register_existing(1, parse_code("DFT-GOV-REG-020", CodeFormat()))
        documents.register_existing(1, parse_code("DFT-GOV-REG-003", CodeFormat()))
        assert documents.create_document(key).number == 21

    @pytest.mark.parametrize("code", ["DFT-GOV-REG-000", "DFT-GOV-REG-000 draft.pdf"])
    def test_number_zero_is_rejected(self, documents, key, code):
        with pytest.raises(MalformedCode) as exc_info:
            documents.register_existing(1, parse_code(code, CodeFormat(), scope=1))
        assert exc_info.value.reason == "Number must be positive"
        assert documents.list_recent(1) == []
        assert documents.allocator.peek_next(key) == 1

    def test_uses_given_scope(self, documents):
        parsed = parse_code("DFT-GOV-REG-001", CodeFormat(), scope=0)
        documents.register_existing(4, parsed, "x.pdf")
        assert [d.key.scope for d in documents.list_recent(4)] == [4]
        assert documents.list_recent(0) == []


class TestImportCodeLines:
    def test_registers_and_reports(self, documents, key):
        result = documents.import_code_lines(
            1,
            [
                "# code  file",
                "DFT-GOV-REG-003 Minutes March.pdf",
                "DFT-GOV-REG-009",
                "DFT-GOV-009 missing level",
                "dft-gov-reg-003 again.pdf",
            ],
            created_by="import",
        )
        assert [p.number for p in result.valid] == [3, 9]
        assert [e.raw for e in result.invalid] == [
            "DFT-GOV-009 missing level",
            "dft-gov-reg-003 again.pdf",
        ]
        assert "already exists" in result.invalid[1].reason
        assert [(s.key, s.max_number, s.next_number) for s in result.summaries] == [(key, 9, 10)]

        names = sorted(d.file_name for d in documents.list_recent(1))
        assert names == ["DFT-GOV-REG-009", "Minutes March.pdf"]
        assert documents.create_document(key).number == 10


class TestPurge:
    def test_removes_documents_keeps_counters(self, documents, key):
        for _ in range(3):
            documents.create_document(key)
        documents.create_document(HierarchicalKey.of(2, "OTHER"))

        assert documents.purge(1) == 3
        assert documents.list_recent(1) == []
        assert len(documents.list_recent(2)) == 1
        assert documents.create_document(key).number == 4

    def test_purge_empty_scope(self, documents):
        assert documents.purge(9) == 0
