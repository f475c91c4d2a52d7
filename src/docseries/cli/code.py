"""
CLI: ``docseries code``: format and parse codes without touching the database.
"""

from __future__ import annotations

import typer

from docseries.cli.utils import handle_errors, make_key, output
from docseries.core.codec import format_code, parse_code
from docseries.core.config import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("format")
def format_cmd(
    levels: list[str] = typer.Argument(..., help="Key levels, e.g. DFT GOV REG"),
    number: int = typer.Option(..., "--number", "-n", min=0, help="Sequence number"),
    free_text: str = typer.Option("", "--text", "-t", help="Free text after the code"),
    extension: str | None = typer.Option(None, "--ext", "-e", help="File extension"),
) -> None:
    """Print the file name for a key and number."""
    fmt = get_settings().code_format()
    key = make_key(0, levels)
    typer.echo(format_code(key, number, free_text, extension, fmt))


@app.command("parse")
def parse_cmd(
    raw: str = typer.Argument(..., help="Code or file name"),
    scope: int = typer.Option(0, "--scope", "-s", help="Project / tenant id"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Decode a code or file name into levels, number, free text and extension."""
    fmt = get_settings().code_format()
    with handle_errors():
        parsed = parse_code(raw, fmt, scope)
    output(
        {
            "levels": fmt.separator.join(parsed.key.active_levels(fmt.level_count)),
            "number": parsed.number,
            "free_text": parsed.trailing_free_text,
            "extension": parsed.extension or "",
        },
        as_json=json_out,
        title="Parsed",
    )
