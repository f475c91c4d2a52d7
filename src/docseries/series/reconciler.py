"""
Import reconciler: seeds series counters from numbers found in external data.

A bulk import (a folder of legacy files, a spreadsheet of codes) reveals the
highest number already used per key.  The reconciler groups those
observations by normalised key and moves each series' ``next_number`` past
them, so the allocator never hands out a number the import already
contains.

A code catalog (rows of level, code and description) goes through the same
``reconcile()`` with nothing observed, which registers the series and their
descriptions without moving any counter backwards.

Architecture:
    ::

        names ──► parse_code() per name ──┬─► InvalidImportEntry(raw, reason)
                                          │
                                          ▼
                               group_observations()   one per normalised key
                                          │
                                          ▼
        reconcile():  KeyLockTable.hold_many(keys)    sorted order
                        └─ Database.transaction()     all-or-nothing
                             └─ SeriesStore.upsert(key, description, max + 1)

Guardrails:
    ❌ DON'T: Abort a file import on the first malformed name
    ✅ DO: Collect InvalidImportEntry per line, seed the rest

    ❌ DON'T: Upsert the same key twice in one batch
    ✅ DO: Group first; one upsert per normalised key

Tags:
    docseries, import, reconcile, seeding
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from docseries.core.codec import DEFAULT_FORMAT, CodeFormat, try_parse_code
from docseries.core.keys import HierarchicalKey
from docseries.core.locks import KeyLockTable
from docseries.core.logging import LogContext, get_logger
from docseries.core.models import (
    CatalogEntry,
    CatalogImportResult,
    CodeLine,
    ImportObservation,
    ImportResult,
    InvalidImportEntry,
    ParsedCode,
    SeriesSummary,
)
from docseries.core.uow import Database
from docseries.series.store import SeriesStore

logger = get_logger(__name__)

_PATH_SEPARATORS = re.compile(r"[\\/]")
_LEVEL_CODE = re.compile(r"^[A-Za-z0-9_-]+$")


def base_name(raw: str) -> str:
    """Strip directory components (``/`` or ``\\``) from a path."""
    return _PATH_SEPARATORS.split(raw.strip())[-1].strip()


def group_observations(observations: Iterable[ImportObservation]) -> list[ImportObservation]:
    """Collapse observations to one per normalised key.

    Keeps the maximum number seen and the first non-blank description.
    Output follows the order in which keys were first seen.
    """
    grouped: dict[HierarchicalKey, ImportObservation] = {}
    for obs in observations:
        description = (obs.description or "").strip() or None
        current = grouped.get(obs.key)
        if current is None:
            grouped[obs.key] = ImportObservation(obs.key, obs.max_number_seen, description)
            continue
        grouped[obs.key] = ImportObservation(
            current.key,
            max(current.max_number_seen, obs.max_number_seen),
            current.description or description,
        )
    return list(grouped.values())


class ImportReconciler:
    """Seeds series from import observations and bulk file names."""

    group_observations = staticmethod(group_observations)

    def __init__(
        self,
        database: Database,
        locks: KeyLockTable,
        fmt: CodeFormat = DEFAULT_FORMAT,
        lock_timeout: float | None = 5.0,
    ) -> None:
        self.database = database
        self.locks = locks
        self.fmt = fmt
        self.lock_timeout = lock_timeout

    def reconcile(self, scope: int, observations: Iterable[ImportObservation]) -> int:
        """Seed every observed key in one transaction; return the series count.

        ``next_number`` of each series becomes at least ``max_seen + 1``; it is
        never lowered.  Either every key is seeded or none is.
        """
        grouped = group_observations(
            ImportObservation(HierarchicalKey(scope, obs.key.levels), obs.max_number_seen, obs.description)
            for obs in observations
        )
        if not grouped:
            return 0

        with self.locks.hold_many((obs.key for obs in grouped), self.lock_timeout):
            with self.database.transaction(operation="reconcile") as conn:
                store = SeriesStore(conn, self.database.dialect)
                for obs in grouped:
                    store.upsert(obs.key, obs.description, obs.max_number_seen + 1)

        logger.info("import_reconciled", scope=scope, series=len(grouped))
        return len(grouped)

    def _summaries(self, grouped: list[ImportObservation], seeded: bool) -> list[SeriesSummary]:
        if not seeded:
            return [
                SeriesSummary(obs.key, obs.max_number_seen, obs.max_number_seen + 1)
                for obs in grouped
            ]
        with self.database.transaction(read_only=True, operation="import_summary") as conn:
            store = SeriesStore(conn, self.database.dialect)
            summaries = []
            for obs in grouped:
                record = store.find(obs.key)
                next_number = record.next_number if record else obs.max_number_seen + 1
                summaries.append(SeriesSummary(obs.key, obs.max_number_seen, next_number))
        return summaries

    def import_file_names(
        self, scope: int, names: Iterable[str], seed: bool = True
    ) -> ImportResult:
        """Parse file names, report malformed ones, and seed the rest.

        Blank names are skipped.  Directory components are ignored.
        """
        valid: list[ParsedCode] = []
        invalid: list[InvalidImportEntry] = []

        with LogContext(scope=scope, operation="import_file_names"):
            for raw in names:
                if not raw or not raw.strip():
                    continue
                parsed, reason = try_parse_code(base_name(raw), self.fmt, scope)
                if parsed is None:
                    invalid.append(InvalidImportEntry(raw=raw, reason=reason))
                    logger.debug("import_name_rejected", name=raw, reason=reason)
                    continue
                valid.append(parsed)

            grouped = group_observations(
                ImportObservation(parsed.key, parsed.number) for parsed in valid
            )
            seeded = self.reconcile(scope, grouped) if seed else 0
            summaries = self._summaries(grouped, seeded > 0)

            logger.info(
                "import_file_names_done",
                valid=len(valid),
                invalid=len(invalid),
                series=len(grouped),
                seeded=seeded,
            )
        return ImportResult(valid=valid, invalid=invalid, summaries=summaries, seeded=seeded)

    def import_code_lines(
        self, scope: int, lines: Iterable[str]
    ) -> tuple[list[CodeLine], list[InvalidImportEntry]]:
        """Parse ``CODE [file name]`` lines.

        Blank lines and ``#`` comments are skipped.  When the file name is
        missing the code itself is used.  Recorded documents are numbered
        from 1, so a ``000`` code is rejected here.
        """
        entries: list[CodeLine] = []
        invalid: list[InvalidImportEntry] = []
        for line in lines:
            text = (line or "").strip()
            if not text or text.startswith("#"):
                continue
            parts = text.split(None, 1)
            code = parts[0]
            file_name = parts[1].strip() if len(parts) > 1 else code
            parsed, reason = try_parse_code(code, self.fmt, scope)
            if parsed is not None and parsed.number < 1:
                parsed, reason = None, "Number must be positive"
            if parsed is None:
                invalid.append(InvalidImportEntry(raw=line, reason=reason))
                continue
            entries.append(CodeLine(parsed=parsed, file_name=file_name, raw=line))
        return entries, invalid

    def import_catalog(self, scope: int, rows: Iterable[Sequence[str]]) -> CatalogImportResult:
        """Register the series listed in a hierarchical code catalog.

        Each row is ``(level, code[, description])``.  A level-``n`` row
        sets the ``n``-th level and clears every deeper one, so rows inherit
        their parents from the rows above them::

            1, DFT, Department for Transport
            2, GOV, Governance            -> DFT-GOV
            3, REG, Regulations           -> DFT-GOV-REG
            2, FIN, Finance               -> DFT-FIN

        Every resulting key is upserted with a next number of at least 1
        and its description.  Existing counters never move backwards.
        Malformed rows are reported and skipped.
        """
        level_count = self.fmt.level_count
        current: list[str] = [""] * level_count
        entries: list[CatalogEntry] = []
        invalid: list[InvalidImportEntry] = []

        with LogContext(scope=scope, operation="import_catalog"):
            for row in rows:
                cells = [str(cell).strip() for cell in row]
                if not any(cells):
                    continue
                raw = ",".join(cells)
                level_text = cells[0]
                code = cells[1] if len(cells) > 1 else ""
                # Descriptions may themselves contain commas
                description = ",".join(cells[2:]).strip() or None

                level_ok = level_text.isascii() and level_text.isdigit()
                if not level_ok or not 1 <= int(level_text) <= level_count:
                    invalid.append(InvalidImportEntry(raw, f"Level must be between 1 and {level_count}"))
                    continue
                level = int(level_text)
                if not code:
                    invalid.append(InvalidImportEntry(raw, "Empty code"))
                    continue
                if not _LEVEL_CODE.match(code):
                    invalid.append(InvalidImportEntry(raw, "Codes must be alphanumeric (A-Z, 0-9, _, -)"))
                    continue
                if not all(current[: level - 1]):
                    invalid.append(InvalidImportEntry(raw, f"Level {level} code has no parent"))
                    continue

                current[level - 1] = code
                current[level:] = [""] * (level_count - level)
                entries.append(CatalogEntry(HierarchicalKey.of(scope, *current[:level]), description))

            seeded = self.reconcile(
                scope, (ImportObservation(entry.key, 0, entry.description) for entry in entries)
            )
            logger.info("import_catalog_done", entries=len(entries), invalid=len(invalid), seeded=seeded)
        return CatalogImportResult(entries=entries, invalid=invalid, seeded=seeded)


__all__ = [
    "ImportReconciler",
    "base_name",
    "group_observations",
]
