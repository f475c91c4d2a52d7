"""Core primitives: keys, codec, errors, logging, locks and persistence.

Nothing in ``docseries.core`` knows about series semantics; the
``docseries.series`` package builds the store, allocator and importer on top
of these pieces.
"""

from docseries.core.codec import (
    DEFAULT_FORMAT,
    CodeFormat,
    build_code,
    format_code,
    parse_code,
    try_parse_code,
)
from docseries.core.errors import (
    AllocationTimedOut,
    DocSeriesError,
    DuplicateDocument,
    ErrorCategory,
    InvalidConfig,
    MalformedCode,
    SeriesInUse,
    SeriesNotFound,
    StorageUnavailable,
)
from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.core.uow import Database

__all__ = [
    "DEFAULT_FORMAT",
    "CodeFormat",
    "build_code",
    "format_code",
    "parse_code",
    "try_parse_code",
    "AllocationTimedOut",
    "DocSeriesError",
    "DuplicateDocument",
    "ErrorCategory",
    "InvalidConfig",
    "MalformedCode",
    "SeriesInUse",
    "SeriesNotFound",
    "StorageUnavailable",
    "HierarchicalKey",
    "KeyLockTable",
    "Database",
]
