"""
docseries - hierarchical document codes and their sequence numbers.

- docseries.core: keys, codec, errors, logging, locks, persistence
- docseries.series: store, allocator, ledger, reconciler, documents
- docseries.DocSeries: the library façade
"""

__version__ = "0.1.0"

from docseries.core import *  # noqa: F403
from docseries.core.models import (
    AllocatedNumber,
    CatalogEntry,
    CatalogImportResult,
    CodeLine,
    DocumentCreation,
    DocumentRecord,
    ImportObservation,
    ImportResult,
    InvalidImportEntry,
    ParsedCode,
    SeriesRecord,
    SeriesSummary,
)
from docseries.service import DocSeries

__all__ = [  # noqa: F405
    "DocSeries",
    "AllocatedNumber",
    "CatalogEntry",
    "CatalogImportResult",
    "CodeLine",
    "DocumentCreation",
    "DocumentRecord",
    "ImportObservation",
    "ImportResult",
    "InvalidImportEntry",
    "ParsedCode",
    "SeriesRecord",
    "SeriesSummary",
    "HierarchicalKey",
    "CodeFormat",
    "format_code",
    "parse_code",
    "try_parse_code",
    "build_code",
    "DocSeriesError",
    "MalformedCode",
    "AllocationTimedOut",
    "SeriesInUse",
    "SeriesNotFound",
    "DuplicateDocument",
    "StorageUnavailable",
    "InvalidConfig",
]
