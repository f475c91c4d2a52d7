"""
CLI: ``docseries import``: seed series from existing files and code lists.
"""

from __future__ import annotations

import csv
from pathlib import Path

import typer

from docseries.cli.utils import console, get_service, handle_errors, output
from docseries.core.logging import LogContext
from docseries.core.models import ImportResult

app = typer.Typer(no_args_is_help=True)


def _collect_names(paths: list[Path], from_list: bool) -> list[str]:
    names: list[str] = []
    for path in paths:
        if from_list:
            names.extend(path.read_text(encoding="utf-8").splitlines())
        elif path.is_dir():
            names.extend(sorted(p.name for p in path.iterdir() if p.is_file()))
        else:
            names.append(path.name)
    return names


def _render(result: ImportResult, separator: str, as_json: bool) -> None:
    summaries = [
        {"key": s.key.display(separator), "max_number": s.max_number, "next_number": s.next_number}
        for s in result.summaries
    ]
    invalid = [{"name": e.raw, "reason": e.reason} for e in result.invalid]
    if as_json:
        output(
            {"valid": len(result.valid), "seeded": result.seeded, "summaries": summaries, "invalid": invalid},
            as_json=True,
        )
        return
    output(summaries, title="Series")
    if invalid:
        output(invalid, title="Rejected")
    console.print(
        f"[bold]{len(result.valid)}[/bold] valid, [bold]{len(invalid)}[/bold] rejected, "
        f"[bold]{result.seeded}[/bold] series seeded"
    )


@app.command()
def files(
    paths: list[Path] = typer.Argument(..., exists=True, help="Files or directories"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    from_list: bool = typer.Option(False, "--from-list", help="Paths are text files with one name per line"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse and summarise without seeding"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Parse existing file names and move each series' counter past them."""
    service = get_service(database)
    names = _collect_names(paths, from_list)
    with handle_errors(), LogContext(batch=",".join(p.name for p in paths)):
        result = service.import_file_names(scope, names, seed=not dry_run)
    _render(result, service.fmt.separator, json_out)


@app.command()
def codes(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file of 'CODE [file name]' lines"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    created_by: str | None = typer.Option(None, "--by", help="Recorded as the creator"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Record already-numbered documents listed as 'CODE [file name]' lines."""
    service = get_service(database)
    lines = path.read_text(encoding="utf-8").splitlines()
    with handle_errors(), LogContext(batch=path.name):
        result = service.import_code_lines(scope, lines, created_by)
    _render(result, service.fmt.separator, json_out)


@app.command()
def catalog(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV of level,code,description rows"),
    scope: int = typer.Option(..., "--scope", "-s", help="Project / tenant id"),
    header: bool = typer.Option(False, "--header", help="Skip the first row"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Register the series of a hierarchical code catalog."""
    service = get_service(database)
    with path.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    if header:
        rows = rows[1:]
    with handle_errors(), LogContext(batch=path.name):
        result = service.import_catalog(scope, rows)

    separator = service.fmt.separator
    entries = [{"key": e.key.display(separator), "description": e.description} for e in result.entries]
    invalid = [{"row": e.raw, "reason": e.reason} for e in result.invalid]
    if json_out:
        output({"entries": entries, "seeded": result.seeded, "invalid": invalid}, as_json=True)
        return
    output(entries, title="Catalog")
    if invalid:
        output(invalid, title="Rejected")
    console.print(
        f"[bold]{len(entries)}[/bold] entries, [bold]{len(invalid)}[/bold] rejected, "
        f"[bold]{result.seeded}[/bold] series seeded"
    )
