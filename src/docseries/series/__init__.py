"""Series semantics: store, allocator, ledger, reconciler and document service."""

from docseries.series.allocator import SequenceAllocator
from docseries.series.documents import DocumentService
from docseries.series.ledger import DocumentRepository
from docseries.series.reconciler import ImportReconciler, group_observations
from docseries.series.store import SeriesStore

__all__ = [
    "SequenceAllocator",
    "DocumentService",
    "DocumentRepository",
    "ImportReconciler",
    "group_observations",
    "SeriesStore",
]
