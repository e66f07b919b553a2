"""
Error types for flowspec parsing, validation, and schema loading.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class FlowSpecError(Exception):
    """Base exception for all flowspec errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(FlowSpecError):
    """
    Raised when flow source cannot be parsed.

    Examples:
    - Type declaration with unbalanced braces at end of file
    - Narrative block that is never closed
    - Command example whose ``when`` has an unexpected shape
    """

    pass


class ValidationError(FlowSpecError):
    """
    Raised when a value fails validation.

    Examples:
    - Token prefix containing characters outside the URL-safe set
    """

    pass


class SchemaError(FlowSpecError):
    """
    Raised when a schema document cannot be turned into a model.

    Examples:
    - Narrative without a title
    - Slice with an unknown type
    - Document that is not valid JSON
    """

    def __init__(
        self,
        message: str,
        context: Optional["ErrorContext"] = None,
        locations: list[str] | None = None,
    ):
        self.locations = locations or []
        super().__init__(message, context)


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the source file (``<source>`` for in-memory text)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet showing the error location
    """

    file: Path | str
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "items.flow.ts:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet starts up to 2 lines before the error line
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def snippet_around(lines: list[str], index: int, radius: int = 2) -> str:
    """Return the lines around a 0-based index, for use as an error snippet."""
    start = max(0, index - radius)
    return "\n".join(lines[start : index + radius + 1])


def make_parse_error(
    message: str,
    file: Path | str | None,
    line: int,
    column: int,
    snippet: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        file: Source file path (None for in-memory text)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet

    Returns:
        ParseError with context attached
    """
    context = ErrorContext(
        file=file if file is not None else "<source>",
        line=line,
        column=column,
        snippet=snippet,
    )
    return ParseError(message, context)
