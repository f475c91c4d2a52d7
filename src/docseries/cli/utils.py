"""
CLI utility helpers: service construction, error reporting and output.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import is_dataclass
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from docseries.core.config import get_settings
from docseries.core.errors import DocSeriesError
from docseries.core.keys import HierarchicalKey
from docseries.core.models import SeriesRecord
from docseries.service import DocSeries

console = Console()
err_console = Console(stderr=True)


# ── Service helpers ──────────────────────────────────────────────────────


def get_service(database: str | None = None) -> DocSeries:
    """Build a :class:`DocSeries` from settings, optionally overriding the URL."""
    settings = get_settings()
    if database:
        settings = settings.model_copy(update={"database_url": database})
    return DocSeries.from_settings(settings)


def make_key(scope: int, levels: list[str]) -> HierarchicalKey:
    try:
        return HierarchicalKey.of(scope, *levels)
    except DocSeriesError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=2) from e


@contextmanager
def handle_errors() -> Iterator[None]:
    """Render a :class:`DocSeriesError` as one red line and exit 1."""
    try:
        yield
    except DocSeriesError as e:
        hint = " (retryable)" if e.retryable else ""
        err_console.print(
            f"[bold red]Error[/bold red] ({type(e).__name__}/{e.category.value}): {e.message}{hint}"
        )
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def series_row(record: SeriesRecord, separator: str = "-") -> dict[str, Any]:
    return {
        "id": record.id,
        "scope": record.key.scope,
        "key": record.key.display(separator),
        "description": record.description or "",
        "next_number": record.next_number,
    }


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if isinstance(obj, HierarchicalKey):
        return {"scope": obj.scope, "key": obj.display()}
    if is_dataclass(obj) and not isinstance(obj, type):
        return {
            name: (value.display() if isinstance(value, HierarchicalKey) else value)
            for name, value in ((f, getattr(obj, f)) for f in obj.__dataclass_fields__)
        }
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a dict, dataclass or list of them to the terminal."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


__all__ = [
    "console",
    "err_console",
    "get_service",
    "make_key",
    "handle_errors",
    "series_row",
    "output",
]
