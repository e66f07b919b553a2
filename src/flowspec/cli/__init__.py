"""
flowspec CLI package.

- schema.py: export-schema, specs and gwt commands
- source.py: sort-types and token commands
- utils.py: Shared utilities
"""

import typer

from flowspec.cli.schema import export_schema_command, gwt_command, specs_command
from flowspec.cli.source import sort_types_command, token_command
from flowspec.cli.utils import configure_logging, version_callback

app = typer.Typer(
    help="""flowspec – compiler for narrative/flow specification files

  • export-schema CONTEXT_DIR FLOW_DIR
    → Compile flow files into the schema document

  • sort-types FILE
    → Keep type declarations sorted after the imports
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """flowspec CLI main callback for global options."""
    configure_logging(verbose)


app.command(name="export-schema")(export_schema_command)
app.command(name="specs")(specs_command)
app.command(name="gwt")(gwt_command)
app.command(name="sort-types")(sort_types_command)
app.command(name="token")(token_command)


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``flowspec`` console script."""
    app(args=argv)


__all__ = ["app", "main"]
