"""
Source CLI commands.

Commands:
- sort-types: Rewrite a flow file with its type declarations sorted
- token: Print a fresh token
"""

from __future__ import annotations

from pathlib import Path

import typer

from flowspec.core.errors import FlowSpecError
from flowspec.core.ids import generate_token
from flowspec.core.reconstruct import analyze_code_usage, sort_type_declarations
from flowspec.core.type_decls import collect_type_declarations


def sort_types_command(
    file: Path = typer.Argument(..., help="Flow source file"),
    check: bool = typer.Option(
        False, "--check", help="Only report whether the file would change (exit 1 if so)"
    ),
    prune: bool = typer.Option(
        False, "--prune", help="Drop declarations the flow statements never reference"
    ),
) -> None:
    """
    Sort type declarations alphabetically after the imports.

    Examples:
        flowspec sort-types flows/items.flow.ts
        flowspec sort-types flows/items.flow.ts --check
    """
    try:
        source = file.read_text(encoding="utf-8")
        keep = None
        if prune:
            names = [d.name for d in collect_type_declarations(source.split("\n"))]
            keep = analyze_code_usage(source, names)
        result = sort_type_declarations(source, keep=keep, file=file)
    except OSError as e:
        typer.echo(f"Error reading {file}: {e}", err=True)
        raise typer.Exit(code=1)
    except FlowSpecError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if result == source:
        typer.echo(f"{file} unchanged")
        return

    if check:
        typer.echo(f"{file} would be rewritten")
        raise typer.Exit(code=1)

    file.write_text(result, encoding="utf-8")
    typer.echo(f"{file} rewritten")


def token_command(
    prefix: str = typer.Option(None, "--prefix", "-p", help="URL-safe prefix, e.g. AUTO-"),
) -> None:
    """Print a new random token."""
    try:
        typer.echo(generate_token(prefix))
    except FlowSpecError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
