"""
Flow/type separation.

Splits a source document into the lines that belong to type declarations
and the lines that hold flow statements. Together the two parts are
exactly the original lines: nothing is duplicated or dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .type_decls import TypeDeclaration, collect_type_declarations, declared_line_indices


@dataclass(frozen=True)
class SeparatedSource:
    """Result of splitting a source document."""

    type_lines: list[str] = field(default_factory=list)
    flow_lines: list[str] = field(default_factory=list)
    declarations: list[TypeDeclaration] = field(default_factory=list)


def extract_flow_code(
    lines: list[str],
    declarations: list[TypeDeclaration] | None = None,
) -> list[str]:
    """Return every line not covered by a type declaration, in order."""
    if declarations is None:
        declarations = collect_type_declarations(lines)
    excluded = declared_line_indices(declarations)
    return [line for index, line in enumerate(lines) if index not in excluded]


def split_source(lines: list[str]) -> SeparatedSource:
    """Partition lines into type-declaration lines and flow lines."""
    declarations = collect_type_declarations(lines)
    excluded = declared_line_indices(declarations)

    type_lines: list[str] = []
    flow_lines: list[str] = []
    for index, line in enumerate(lines):
        (type_lines if index in excluded else flow_lines).append(line)

    return SeparatedSource(type_lines=type_lines, flow_lines=flow_lines, declarations=declarations)
