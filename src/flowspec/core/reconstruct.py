"""
Type reconstruction for flow source.

Rewrites a flow file so that its type declarations sit in one block right
after the imports, alphabetically ordered and without duplicates, followed
by the flow statements in their original order. Rewriting its own output
yields the same text, so repeated generation passes produce stable diffs.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .type_decls import (
    SourceScanner,
    TypeDeclaration,
    collect_type_declarations,
    declared_line_indices,
)

logger = logging.getLogger(__name__)

IMPORT_RE = re.compile(r"^\s*import\b")
SIDE_EFFECT_IMPORT_RE = re.compile(r"^\s*import\s+['\"]")
IMPORT_FROM_RE = re.compile(r"\bfrom\s+['\"][^'\"]*['\"]")
FLOW_CALL_RE = re.compile(r"^\s*(?:narrative|flow)\s*\(")
TYPE_REFERENCE_CALL_RE = re.compile(r"\b(?:event|state|command)\s*\(\s*['\"]([A-Za-z_$][\w$]*)['\"]")


@dataclass(frozen=True)
class CodeBoundaries:
    """
    Positions that frame the type block.

    Attributes:
        last_import_line: Last line of the last import statement (-1 if none)
        first_flow_line: First narrative/flow call (-1 if none)
    """

    last_import_line: int = -1
    first_flow_line: int = -1


def find_code_boundaries(lines: list[str]) -> CodeBoundaries:
    """Locate the end of the import section and the first flow call."""
    last_import = -1
    in_import = False

    for index, line in enumerate(lines):
        if in_import:
            last_import = index
            if IMPORT_FROM_RE.search(line) or line.rstrip().endswith(";"):
                in_import = False
            continue

        if FLOW_CALL_RE.match(line):
            return CodeBoundaries(last_import_line=last_import, first_flow_line=index)

        if IMPORT_RE.match(line):
            last_import = index
            complete = (
                IMPORT_FROM_RE.search(line)
                or SIDE_EFFECT_IMPORT_RE.match(line)
                or line.rstrip().endswith(";")
            )
            in_import = not complete

    return CodeBoundaries(last_import_line=last_import)


def order_declarations(
    declarations: list[TypeDeclaration],
    keep: Iterable[str] | None = None,
) -> list[TypeDeclaration]:
    """
    Deduplicate, filter and sort declarations.

    The first declaration of a name wins. Sorting is case-insensitive with
    case-sensitive and source-order tie breaks, so the order is total.
    """
    allowed = set(keep) if keep is not None else None
    seen: set[str] = set()
    unique: list[TypeDeclaration] = []

    for declaration in declarations:
        if declaration.name in seen:
            logger.debug("Dropping duplicate declaration of %s", declaration.name)
            continue
        seen.add(declaration.name)
        if allowed is not None and declaration.name not in allowed:
            logger.debug("Dropping unused declaration of %s", declaration.name)
            continue
        unique.append(declaration)

    return sorted(unique, key=lambda d: (d.name.casefold(), d.name, d.start_line))


def _trim_blank_edges(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def _remaining_lines(lines: list[str], start: int, covered: set[int]) -> list[str]:
    """Lines from ``start`` not covered by declarations.

    A run of blank lines left behind by a removed declaration collapses
    to a single blank line.
    """
    result: list[str] = []
    removed_since_text = False

    for index in range(start, len(lines)):
        if index in covered:
            removed_since_text = True
            continue
        line = lines[index]
        if not line.strip():
            if removed_since_text and result and not result[-1].strip():
                continue
        else:
            removed_since_text = False
        result.append(line)

    return result


def reconstruct_code(
    lines: list[str],
    ordered: list[TypeDeclaration],
    all_declarations: list[TypeDeclaration],
    last_import_line: int,
    *,
    trailing_newline: bool = False,
) -> str:
    """
    Assemble the rewritten source.

    Layout: imports, blank line, declarations separated by one blank line,
    blank line, remaining flow lines.
    """
    covered = declared_line_indices(all_declarations)
    result: list[str] = [
        lines[index] for index in range(last_import_line + 1) if index not in covered
    ]
    result = _trim_blank_edges(result) if result else result

    if result:
        result.append("")

    for position, declaration in enumerate(ordered):
        if position:
            result.append("")
        result.extend(lines[declaration.start_line : declaration.end_line + 1])

    body = _trim_blank_edges(_remaining_lines(lines, last_import_line + 1, covered))
    if body:
        result.append("")
        result.extend(body)

    if trailing_newline:
        result.append("")

    return "\n".join(result)


def sort_type_declarations(
    source: str,
    *,
    keep: Iterable[str] | None = None,
    file: Path | str | None = None,
) -> str:
    """
    Reorder type declarations alphabetically after the imports.

    Args:
        source: Flow source text
        keep: Optional names to keep; other declarations are dropped
        file: Optional file name used in error context

    Returns:
        Rewritten source. Unchanged when the source declares no types.

    Raises:
        ParseError: When a declaration is not balanced
    """
    lines = source.split("\n")
    declarations = collect_type_declarations(lines, strict=True, file=file)
    if not declarations:
        return source

    boundaries = find_code_boundaries(lines)
    ordered = order_declarations(declarations, keep)
    logger.debug(
        "Sorting %d declaration(s) after line %d", len(ordered), boundaries.last_import_line + 1
    )

    # split("\n") leaves a final "" for text ending in a newline
    trailing_newline = source.endswith("\n")
    if trailing_newline:
        lines = lines[:-1]

    return reconstruct_code(
        lines,
        ordered,
        declarations,
        boundaries.last_import_line,
        trailing_newline=trailing_newline,
    )


def _identifiers(text_lines: list[str]) -> set[str]:
    scanner = SourceScanner()
    found: set[str] = set()
    for line in text_lines:
        found.update(re.findall(r"[A-Za-z_$][\w$]*", scanner.scan(line).code))
    return found


def analyze_code_usage(source: str, type_names: Iterable[str]) -> set[str]:
    """
    Find which declared type names the flow statements reference.

    A name counts as used when it appears as an identifier in flow code,
    when it is passed as a quoted name to an ``event``/``state``/``command``
    call, or when another used declaration refers to it.
    """
    lines = source.split("\n")
    names = set(type_names)
    declarations = collect_type_declarations(lines)
    covered = declared_line_indices(declarations)
    flow_lines = [line for index, line in enumerate(lines) if index not in covered]

    used = _identifiers(flow_lines) & names
    for line in flow_lines:
        used.update(name for name in TYPE_REFERENCE_CALL_RE.findall(line) if name in names)

    by_name: dict[str, TypeDeclaration] = {}
    for declaration in declarations:
        by_name.setdefault(declaration.name, declaration)

    pending = list(used)
    while pending:
        name = pending.pop()
        declaration = by_name.get(name)
        if declaration is None:
            continue
        body = lines[declaration.start_line : declaration.end_line + 1]
        for referenced in (_identifiers(body) & names) - used:
            used.add(referenced)
            pending.append(referenced)

    return used
