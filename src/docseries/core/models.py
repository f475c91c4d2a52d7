"""Value objects shared by the series store, allocator and importer.

STDLIB ONLY: frozen dataclasses, no ORM state.  Rows are converted to these
at the repository boundary.

Tags:
    docseries, models, value-objects
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from docseries.core.keys import HierarchicalKey


@dataclass(frozen=True, slots=True)
class SeriesRecord:
    """A registered code series and the next number it will hand out.

    Attributes:
        id: Stable series id (row id).
        key: Normalised hierarchical key.
        description: Free-text label; ``None`` when never set.
        next_number: Next number to hand out, always ``>= 1``.
        created_at: When the series was first seen.
    """

    id: int
    key: HierarchicalKey
    description: str | None
    next_number: int
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    """A document recorded against a series."""

    id: int
    key: HierarchicalKey
    number: int
    series_id: int
    file_name: str
    free_text: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ParsedCode:
    """Result of decoding a raw code or filename."""

    key: HierarchicalKey
    number: int
    trailing_free_text: str = ""
    extension: str | None = None


@dataclass(frozen=True, slots=True)
class AllocatedNumber:
    """Number handed out by the allocator, with the series it came from."""

    series_id: int
    number: int


@dataclass(frozen=True, slots=True)
class ImportObservation:
    """Highest number observed for a key in external data."""

    key: HierarchicalKey
    max_number_seen: int
    description: str | None = None


@dataclass(frozen=True, slots=True)
class InvalidImportEntry:
    """One rejected input line of a bulk import."""

    raw: str
    reason: str


@dataclass(frozen=True, slots=True)
class CodeLine:
    """One accepted ``CODE [file name]`` line of a register import."""

    parsed: ParsedCode
    file_name: str
    raw: str


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A series described by one row of a code catalog."""

    key: HierarchicalKey
    description: str | None = None


@dataclass(frozen=True)
class CatalogImportResult:
    """Outcome of :meth:`ImportReconciler.import_catalog`."""

    entries: list[CatalogEntry] = field(default_factory=list)
    invalid: list[InvalidImportEntry] = field(default_factory=list)
    seeded: int = 0

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid)


@dataclass(frozen=True, slots=True)
class SeriesSummary:
    """Per-key outcome of a filename import."""

    key: HierarchicalKey
    max_number: int
    next_number: int


@dataclass(frozen=True)
class ImportResult:
    """Outcome of :meth:`ImportReconciler.import_file_names`."""

    valid: list[ParsedCode] = field(default_factory=list)
    invalid: list[InvalidImportEntry] = field(default_factory=list)
    summaries: list[SeriesSummary] = field(default_factory=list)
    seeded: int = 0

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid)


@dataclass(frozen=True, slots=True)
class DocumentCreation:
    """Outcome of creating a document through the allocator."""

    document_id: int
    series_id: int
    number: int
    code: str
    file_name: str


__all__ = [
    "SeriesRecord",
    "DocumentRecord",
    "ParsedCode",
    "AllocatedNumber",
    "ImportObservation",
    "InvalidImportEntry",
    "CodeLine",
    "CatalogEntry",
    "CatalogImportResult",
    "SeriesSummary",
    "ImportResult",
    "DocumentCreation",
]
