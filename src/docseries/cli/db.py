"""
CLI: ``docseries db``: database management commands.
"""

from __future__ import annotations

import typer

from docseries.cli.utils import get_service, handle_errors, output

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Initialise database schema (create tables)."""
    service = get_service(database)
    with handle_errors():
        tables = service.init_schema()
    output(
        {"url": service.database.engine.url.render_as_string(hide_password=True), "tables": ", ".join(tables)},
        as_json=json_out,
        title="Database Init",
    )
