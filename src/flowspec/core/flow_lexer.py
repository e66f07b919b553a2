"""
Tokenizer for flow source.

Converts flow statements into a stream of tokens with source location
tracking. Only the constrained notation flow files use is recognized:
identifiers, quoted strings, template literals, numbers, and single
character punctuation (plus ``=>``). Comments and whitespace are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import make_parse_error


class TokenType(Enum):
    """Token types in flow source."""

    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    TEMPLATE = "TEMPLATE"
    NUMBER = "NUMBER"
    ARROW = "=>"
    PUNCT = "PUNCT"
    EOF = "EOF"


@dataclass
class Token:
    """
    A single token in flow source.

    Attributes:
        type: Type of token
        value: Token value (unescaped contents for strings)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        start: Offset of the first character in the source
        end: Offset just past the last character
    """

    type: TokenType
    value: str
    line: int
    column: int
    start: int = 0
    end: int = 0

    def is_punct(self, value: str) -> bool:
        return self.type == TokenType.PUNCT and self.value == value

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


class FlowLexer:
    """
    Lexer for flow source.

    Quoted strings end at the end of their line even when the closing
    quote is missing; template literals may span lines.
    """

    def __init__(self, text: str, file: Path | str | None = None):
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def skip_line_comment(self) -> None:
        while self.current_char() is not None and self.current_char() != "\n":
            self.advance()

    def skip_block_comment(self) -> None:
        start_line, start_col = self.line, self.column
        self.advance()
        self.advance()
        while self.current_char() is not None:
            if self.current_char() == "*" and self.peek_char() == "/":
                self.advance()
                self.advance()
                return
            self.advance()
        raise make_parse_error("Unterminated block comment", self.file, start_line, start_col)

    def read_string(self) -> str:
        """Read a single or double quoted string."""
        quote = self.current_char()
        self.advance()

        chars = []
        while True:
            current = self.current_char()
            if current is None or current == "\n":
                # Unterminated; the string ends with its line
                return "".join(chars)
            if current == quote:
                self.advance()
                return "".join(chars)
            if current == "\\":
                self.advance()
                escaped = self.current_char()
                if escaped is None:
                    return "".join(chars)
                chars.append(ESCAPES.get(escaped, escaped))
                self.advance()
            else:
                chars.append(current)
                self.advance()

    def read_template(self) -> str:
        """Read a template literal; ``${...}`` placeholders are kept verbatim."""
        start_line, start_col = self.line, self.column
        self.advance()

        chars = []
        while True:
            current = self.current_char()
            if current is None:
                raise make_parse_error(
                    "Unterminated template literal", self.file, start_line, start_col
                )
            if current == "`":
                self.advance()
                return "".join(chars)
            if current == "\\" and self.peek_char() is not None:
                self.advance()
                chars.append(self.current_char() or "")
                self.advance()
                continue
            chars.append(current)
            self.advance()

    def read_number(self) -> str:
        chars = []
        current = self.current_char()
        while current is not None and (current.isalnum() or current in "._"):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def read_identifier(self) -> str:
        chars = []
        current = self.current_char()
        while current is not None and (current.isalnum() or current in "_$"):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens ending with EOF

        Raises:
            ParseError: On an unterminated block comment or template literal
        """
        while self.pos < len(self.text):
            ch = self.text[self.pos]

            if ch.isspace():
                self.advance()
                continue
            if ch == "/" and self.peek_char() == "/":
                self.skip_line_comment()
                continue
            if ch == "/" and self.peek_char() == "*":
                self.skip_block_comment()
                continue

            start, line, column = self.pos, self.line, self.column

            if ch in ("'", '"'):
                token_type, value = TokenType.STRING, self.read_string()
            elif ch == "`":
                token_type, value = TokenType.TEMPLATE, self.read_template()
            elif ch.isdigit():
                token_type, value = TokenType.NUMBER, self.read_number()
            elif ch.isalpha() or ch in "_$":
                token_type, value = TokenType.IDENTIFIER, self.read_identifier()
            elif ch == "=" and self.peek_char() == ">":
                self.advance()
                self.advance()
                token_type, value = TokenType.ARROW, "=>"
            else:
                self.advance()
                token_type, value = TokenType.PUNCT, ch

            self.tokens.append(Token(token_type, value, line, column, start, self.pos))

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column, self.pos, self.pos))
        return self.tokens


def tokenize(text: str, file: Path | str | None = None) -> list[Token]:
    """Convenience function to tokenize flow source."""
    return FlowLexer(text, file).tokenize()
