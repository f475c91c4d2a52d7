"""
CLI: ``docseries series``: code series registry.
"""

from __future__ import annotations

import typer

from docseries.cli.utils import get_service, handle_errors, make_key, output, series_row

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_series(
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List the series of a scope ordered by key."""
    service = get_service(database)
    with handle_errors():
        records = service.list_series(scope)
    rows = [series_row(r, service.fmt.separator) for r in records]
    output(rows, as_json=json_out, title=f"Code Series (scope {scope})")


@app.command()
def upsert(
    levels: list[str] = typer.Argument(..., help="Key levels, e.g. DFT GOV REG"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    description: str | None = typer.Option(None, "--description", help="Series label"),
    next_number: int | None = typer.Option(None, "--next", help="Move the counter to at least N"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create or update a series. The counter never moves backwards."""
    service = get_service(database)
    key = make_key(scope, levels)
    with handle_errors():
        series_id = service.upsert_series(key, description, next_number)
        record = service.get_series(scope, series_id)
    output(series_row(record, service.fmt.separator), as_json=json_out, title="Series")


@app.command()
def delete(
    series_id: int = typer.Argument(..., help="Series id"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Delete a series that no document references."""
    service = get_service(database)
    with handle_errors():
        service.delete_series(scope, series_id)
    typer.echo(f"Deleted series {series_id}")
