"""
CLI: ``docseries allocate`` / ``docseries peek``.
"""

from __future__ import annotations

import typer

from docseries.cli.utils import get_service, handle_errors, make_key, output
from docseries.core.codec import build_code


def allocate(
    levels: list[str] = typer.Argument(..., help="Key levels, e.g. DFT GOV REG"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Reserve the next number of a series."""
    service = get_service(database)
    key = make_key(scope, levels)
    with handle_errors():
        allocated = service.allocate(key)
    output(
        {
            "series_id": allocated.series_id,
            "number": allocated.number,
            "code": build_code(key, allocated.number, service.fmt),
        },
        as_json=json_out,
        title="Allocated",
    )


def peek(
    levels: list[str] = typer.Argument(..., help="Key levels, e.g. DFT GOV REG"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the number the next allocate would return, without reserving it."""
    service = get_service(database)
    key = make_key(scope, levels)
    with handle_errors():
        number = service.peek_next(key)
    output(
        {"number": number, "code": build_code(key, number, service.fmt)},
        as_json=json_out,
        title="Next",
    )
