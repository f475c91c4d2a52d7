"""SQLAlchemy 2.0 persistence layer for docseries.

Modules
-------
base        DocSeriesBase (declarative base) + TimestampMixin
session     Engine factory, schema init, SAConnectionBridge
tables      CodeSeriesTable, DocumentTable

Tags:
    docseries, orm, sqlalchemy, declarative
"""

from __future__ import annotations

from docseries.core.orm.base import DocSeriesBase, TimestampMixin
from docseries.core.orm.session import (
    READ_ONLY_OPTION,
    SAConnectionBridge,
    create_docseries_engine,
    init_schema,
)
from docseries.core.orm.tables import LEVEL_COLUMNS, CodeSeriesTable, DocumentTable

__all__ = [
    "DocSeriesBase",
    "TimestampMixin",
    "READ_ONLY_OPTION",
    "SAConnectionBridge",
    "create_docseries_engine",
    "init_schema",
    "LEVEL_COLUMNS",
    "CodeSeriesTable",
    "DocumentTable",
]
