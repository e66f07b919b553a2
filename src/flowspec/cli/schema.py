"""
Schema CLI commands.

Commands:
- export-schema: Compile flow files and write the schema document
- specs: List flattened specification paths of experiences and slice clients
- gwt: Show the Given/When/Then mapping of one slice
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from flowspec.cli.utils import load_schema_file
from flowspec.core.compiler import compile_sources
from flowspec.core.errors import FlowSpecError
from flowspec.core.gwt import build_command_gwt_mapping, build_query_gwt_mapping
from flowspec.core.ids import add_auto_ids
from flowspec.core.ir import SliceType
from flowspec.core.manifest import discover_flow_files, load_project_manifest
from flowspec.core.schema import dumps_schema, loads_schema
from flowspec.core.specs import flatten_client_specs, flatten_experience

logger = logging.getLogger(__name__)
console = Console()


def export_schema_command(
    context_dir: Path = typer.Argument(..., help="Directory the schema document is written to"),
    flow_dir: Path = typer.Argument(..., help="Directory holding flow files"),
) -> None:
    """
    Compile flow files and write the schema document.

    Flow files are found with the patterns in CONTEXT_DIR/flowspec.toml
    (default: *.narrative.ts, *.flow.ts). Slices from an existing schema
    document are kept.
    """
    try:
        manifest = load_project_manifest(context_dir)
        if not flow_dir.is_dir():
            typer.echo(f"Flow directory not found: {flow_dir}", err=True)
            raise typer.Exit(code=1)

        files = discover_flow_files(flow_dir, manifest.flows)
        logger.info("Found %d flow file(s) in %s", len(files), flow_dir)
        sources = {
            str(path.relative_to(flow_dir)): path.read_text(encoding="utf-8") for path in files
        }

        output = context_dir / manifest.schema.output
        base = loads_schema(output.read_text(encoding="utf-8")) if output.exists() else None

        model = add_auto_ids(compile_sources(sources, base=base), prefix=manifest.schema.id_prefix)
        context_dir.mkdir(parents=True, exist_ok=True)
        output.write_text(dumps_schema(model), encoding="utf-8")
    except FlowSpecError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(
        f"Wrote {output} for {manifest.name} ({len(model.narratives)} narrative(s), "
        f"{len(model.slices)} slice(s), {len(model.messages)} message(s) from {len(files)} file(s))"
    )


def specs_command(
    schema_file: Path = typer.Argument(..., help="Schema document"),
    separator: str | None = typer.Option(
        None, "--separator", "-s", help="Path separator (default: [specs] separator in flowspec.toml)"
    ),
    table: bool = typer.Option(False, "--table", help="Render as a table"),
) -> None:
    """List flattened specification paths, one per line.

    Experience specs come first, then the client specs of each slice.
    """
    model = load_schema_file(schema_file)
    if separator is None:
        try:
            separator = load_project_manifest(schema_file.parent).specs.separator
        except FlowSpecError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

    rows = [
        (narrative.title, experience.title, path)
        for narrative in model.narratives
        for experience in narrative.experiences
        for path in flatten_experience(experience, separator)
    ]
    rows += [
        (f"{slice_.type} slice", slice_.name, path)
        for slice_ in model.slices
        if slice_.client_specs is not None
        for path in flatten_client_specs([slice_.client_specs], separator)
    ]

    if table:
        output = Table(title="Specifications")
        output.add_column("Source")
        output.add_column("Name")
        output.add_column("Spec")
        for row in rows:
            output.add_row(*row)
        console.print(output)
        return

    for _, _, path in rows:
        typer.echo(path)


def gwt_command(
    schema_file: Path = typer.Argument(..., help="Schema document"),
    slice_name: str = typer.Argument(..., help="Slice name"),
) -> None:
    """Print the Given/When/Then mapping of a query or command slice as JSON."""
    model = load_schema_file(schema_file)

    match = next((s for s in model.slices if s.name == slice_name), None)
    if match is None:
        typer.echo(f"Slice not found: {slice_name}", err=True)
        raise typer.Exit(code=1)

    try:
        if match.type == SliceType.COMMAND:
            mapping: object = build_command_gwt_mapping(match)
        else:
            mapping = build_query_gwt_mapping(match)
    except FlowSpecError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(mapping, indent=2, ensure_ascii=False))
