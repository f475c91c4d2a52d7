"""docseries command-line interface (Typer + Rich)."""
