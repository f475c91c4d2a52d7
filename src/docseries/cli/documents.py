"""
CLI: ``docseries document``: create and inspect documents.
"""

from __future__ import annotations

import typer

from docseries.cli.utils import get_service, handle_errors, make_key, output

app = typer.Typer(no_args_is_help=True)


@app.command()
def create(
    levels: list[str] = typer.Argument(..., help="Key levels, e.g. DFT GOV REG"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    free_text: str = typer.Option("", "--text", "-t", help="Free text after the code"),
    extension: str | None = typer.Option(None, "--ext", "-e", help="File extension"),
    created_by: str | None = typer.Option(None, "--by", help="Recorded as the creator"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Allocate a number and record a new document."""
    service = get_service(database)
    key = make_key(scope, levels)
    with handle_errors():
        created = service.create_document(key, free_text, extension, created_by)
    output(created, as_json=json_out, title="Document")


@app.command("list")
def list_documents(
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    limit: int = typer.Option(20, "--limit", "-n", min=1),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Most recently recorded documents of a scope."""
    service = get_service(database)
    with handle_errors():
        records = service.documents.list_recent(scope, limit)
    rows = [
        {"id": r.id, "number": r.number, "file_name": r.file_name, "created_by": r.created_by or ""}
        for r in records
    ]
    output(rows, as_json=json_out, title=f"Documents (scope {scope})")


@app.command()
def purge(
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Delete every document of a scope. Series and counters are kept."""
    if not yes:
        typer.confirm(f"Delete all documents of scope {scope}?", abort=True)
    service = get_service(database)
    with handle_errors():
        removed = service.documents.purge(scope)
    typer.echo(f"Removed {removed} document(s)")
