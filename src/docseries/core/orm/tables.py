"""SQLAlchemy 2.0 table definitions for docseries.

Two tables:

* ``code_series``: one row per ``(scope, normalized_key)`` holding the next
  number to hand out.
* ``documents``: every recorded document; the allocator reads the highest
  number per key from here.

Both carry the six trimmed level columns for display and ordering, plus
``normalized_key`` (lower-cased levels joined with ``\\x1f``).  Uniqueness
is enforced on the normalised form, so keys differing only in case or
surrounding whitespace share one series and one number space.

Tags:
    docseries, orm, sqlalchemy, tables, schema

Usage::

    from docseries.core.orm import DocSeriesBase, create_docseries_engine

    engine = create_docseries_engine("sqlite:///data/docseries.db")
    DocSeriesBase.metadata.create_all(engine)
"""

from __future__ import annotations

import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from docseries.core.orm.base import DocSeriesBase, TimestampMixin

LEVEL_COLUMNS = ("level1", "level2", "level3", "level4", "level5", "level6")


class CodeSeriesTable(TimestampMixin, DocSeriesBase):
    __tablename__ = "code_series"
    __table_args__ = (
        UniqueConstraint("scope", "normalized_key", name="uq_code_series_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope: Mapped[int] = mapped_column(Integer, nullable=False)
    level1: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level2: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level3: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level4: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level5: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level6: Mapped[str] = mapped_column(Text, nullable=False, default="")
    normalized_key: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    next_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class DocumentTable(DocSeriesBase):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("scope", "normalized_key", "number", name="uq_documents_key_number"),
        Index("ix_documents_series", "series_id"),
        Index("ix_documents_scope_created", "scope", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope: Mapped[int] = mapped_column(Integer, nullable=False)
    level1: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level2: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level3: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level4: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level5: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level6: Mapped[str] = mapped_column(Text, nullable=False, default="")
    normalized_key: Mapped[str] = mapped_column(Text, nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    series_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("code_series.id"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    free_text: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )


__all__ = [
    "LEVEL_COLUMNS",
    "CodeSeriesTable",
    "DocumentTable",
]
