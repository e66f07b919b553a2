"""
flowspec CLI utilities.

Shared helpers used across CLI modules.
"""

import logging
import platform
from pathlib import Path

import typer

from flowspec._version import get_version
from flowspec.core.errors import FlowSpecError
from flowspec.core.ir import FlowModel
from flowspec.core.schema import loads_schema


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"flowspec {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_schema_file(path: Path) -> FlowModel:
    """Load a schema document, exiting with code 1 on failure."""
    try:
        return loads_schema(path.read_text(encoding="utf-8"))
    except OSError as e:
        typer.echo(f"Error reading {path}: {e}", err=True)
        raise typer.Exit(code=1)
    except FlowSpecError as e:
        typer.echo(f"Error loading schema: {e}", err=True)
        raise typer.Exit(code=1)
