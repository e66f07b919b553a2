"""
Type-declaration analysis for flow source.

Finds the line ranges occupied by top-level ``type`` and ``interface``
declarations so they can be separated from flow statements. This is not a
parser for the host language: a small scanner tracks string, comment and
bracket state line by line, which is enough for the constrained notation
flow files are written in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .errors import make_parse_error, snippet_around

logger = logging.getLogger(__name__)

DECLARATION_RE = re.compile(
    r"^(?:export\s+)?(?:declare\s+)?(?P<keyword>type|interface)\s+(?P<name>[A-Za-z_$][\w$]*)"
)

QUOTE_CHARS = ("'", '"', "`")

# A type alias whose code ends with one of these continues on the next line
CONTINUATION_SUFFIXES = ("=", "|", "&", ",", "<", "(", "?", ":")
CONTINUATION_PREFIXES = ("|", "&", "=", "?", ":")


@dataclass(frozen=True)
class TypeDeclaration:
    """
    Line range of one declaration.

    Attributes:
        name: Declared type name
        start_line: First line (0-indexed)
        end_line: Last line (0-indexed, inclusive)
        keyword: ``type`` or ``interface``
    """

    name: str
    start_line: int
    end_line: int
    keyword: str = "type"

    def __post_init__(self) -> None:
        if self.start_line > self.end_line:
            raise ValueError(
                f"Declaration {self.name} ends ({self.end_line}) before it starts ({self.start_line})"
            )

    @property
    def line_range(self) -> range:
        return range(self.start_line, self.end_line + 1)

    def text(self, lines: list[str]) -> str:
        """Source text of the declaration."""
        return "\n".join(lines[self.start_line : self.end_line + 1])


@dataclass(frozen=True)
class ScannedLine:
    """Bracket counts for one line, with string contents and comments removed."""

    braces: int
    angles: int
    opened_brace: bool
    code: str


class SourceScanner:
    """
    Line-by-line scanner for brackets outside strings and comments.

    State carried between lines: whether a block comment is open and
    whether a template literal is open. Single and double quoted strings
    end at the end of their line.
    """

    def __init__(self) -> None:
        self.in_block_comment = False
        self.string_char: str | None = None

    @property
    def at_code(self) -> bool:
        """True when the next line starts outside comments and strings."""
        return not self.in_block_comment and self.string_char is None

    def scan(self, line: str) -> ScannedLine:
        braces = 0
        angles = 0
        opened = False
        out: list[str] = []
        prev = ""
        i = 0
        n = len(line)

        while i < n:
            ch = line[i]

            if self.in_block_comment:
                if line.startswith("*/", i):
                    self.in_block_comment = False
                    i += 2
                else:
                    i += 1
                continue

            if self.string_char is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == self.string_char:
                    self.string_char = None
                    out.append(ch)
                i += 1
                continue

            if line.startswith("//", i):
                break
            if line.startswith("/*", i):
                self.in_block_comment = True
                i += 2
                continue

            if ch in QUOTE_CHARS:
                self.string_char = ch
            elif ch == "{":
                braces += 1
                opened = True
            elif ch == "}":
                braces -= 1
            elif ch == "<":
                angles += 1
            elif ch == ">" and prev != "=":
                angles -= 1

            out.append(ch)
            prev = ch
            i += 1

        if self.string_char in ("'", '"'):
            self.string_char = None

        return ScannedLine(braces=braces, angles=angles, opened_brace=opened, code="".join(out))


@dataclass
class _OpenDeclaration:
    name: str
    keyword: str
    start_line: int
    braces: int = 0
    angles: int = 0
    opened_brace: bool = False

    def close(self, end_line: int) -> TypeDeclaration:
        return TypeDeclaration(
            name=self.name,
            start_line=self.start_line,
            end_line=end_line,
            keyword=self.keyword,
        )


def extract_type_name(line: str) -> str:
    """Return the declared name on a declaration line, or an empty string."""
    match = DECLARATION_RE.match(line)
    return match.group("name") if match else ""


def _next_nonblank(lines: list[str], index: int) -> str:
    for line in lines[index + 1 :]:
        if line.strip():
            return line.strip()
    return ""


def _closes(current: _OpenDeclaration, scanned: ScannedLine, next_line: str) -> bool:
    if current.keyword == "interface":
        return current.opened_brace and current.braces <= 0

    if current.braces > 0 or current.angles > 0:
        return False
    code = scanned.code.strip()
    if code.endswith(CONTINUATION_SUFFIXES):
        return False
    return not next_line.startswith(CONTINUATION_PREFIXES)


def collect_type_declarations(
    lines: list[str],
    *,
    strict: bool = False,
    file: Path | str | None = None,
) -> list[TypeDeclaration]:
    """
    Collect top-level type declarations in source order.

    Args:
        lines: Source lines
        strict: Raise ParseError on a declaration left open at end of file
            instead of dropping it
        file: Optional file name used in error context

    Returns:
        Declarations whose ranges never overlap

    Raises:
        ParseError: In strict mode, when a declaration is unbalanced at EOF
    """
    scanner = SourceScanner()
    declarations: list[TypeDeclaration] = []
    current: _OpenDeclaration | None = None

    for index, line in enumerate(lines):
        match = DECLARATION_RE.match(line) if scanner.at_code else None

        if match and current is not None:
            # A new top-level declaration ends the one still open
            if strict:
                raise make_parse_error(
                    f"{current.keyword} declaration '{current.name}' is not terminated "
                    f"before declaration '{match.group('name')}'",
                    file,
                    line=current.start_line + 1,
                    column=1,
                    snippet=snippet_around(lines, current.start_line),
                )
            declarations.append(current.close(index - 1))
            current = None

        scanned = scanner.scan(line)

        if match:
            current = _OpenDeclaration(
                name=match.group("name"),
                keyword=match.group("keyword"),
                start_line=index,
            )

        if current is None:
            continue

        current.braces += scanned.braces
        current.angles += scanned.angles
        current.opened_brace = current.opened_brace or scanned.opened_brace

        if _closes(current, scanned, _next_nonblank(lines, index)):
            declarations.append(current.close(index))
            current = None

    if current is not None:
        message = (
            f"Unbalanced braces in {current.keyword} declaration '{current.name}' "
            f"(depth {current.braces} at end of file)"
        )
        if strict:
            raise make_parse_error(
                message,
                file,
                line=current.start_line + 1,
                column=1,
                snippet=snippet_around(lines, current.start_line),
            )
        logger.warning("%s; keeping %d earlier declaration(s)", message, len(declarations))

    return declarations


def declared_line_indices(declarations: list[TypeDeclaration]) -> set[int]:
    """Union of all declaration ranges."""
    covered: set[int] = set()
    for declaration in declarations:
        covered.update(declaration.line_range)
    return covered
