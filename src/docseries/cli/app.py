"""
Root Typer application for the docseries CLI.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from docseries.core.config import get_settings
from docseries.core.logging import configure_logging

app = Typer(
    name="docseries",
    help="docseries: hierarchical document codes and their sequence numbers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from docseries import __version__

        typer.echo(f"docseries {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level (default: DOCSERIES_LOG_LEVEL)."),
) -> None:
    """docseries CLI: allocate, preview, import and format document codes."""
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_format == "json",
        stream=sys.stderr,
    )


# ── Sub-command registration ─────────────────────────────────────────────

from docseries.cli.allocate import allocate, peek  # noqa: E402
from docseries.cli.code import app as code_app  # noqa: E402
from docseries.cli.db import app as db_app  # noqa: E402
from docseries.cli.documents import app as documents_app  # noqa: E402
from docseries.cli.imports import app as imports_app  # noqa: E402
from docseries.cli.series import app as series_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(series_app, name="series", help="Code series registry.")
app.add_typer(code_app, name="code", help="Format and parse codes.")
app.add_typer(imports_app, name="import", help="Seed series from existing files.")
app.add_typer(documents_app, name="document", help="Create and list documents.")
app.command("allocate")(allocate)
app.command("peek")(peek)
