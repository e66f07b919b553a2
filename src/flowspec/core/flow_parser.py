"""
Recursive descent parser for flow statements.

Produces a small syntax tree: every statement of interest is a chain of
calls such as ``example('x').when<AddItem>({...}).then<ItemAdded>({...})``.
Arguments are evaluated where they are literals (strings, numbers,
object and array literals), arrow-function bodies become nested
statement blocks, and anything else is kept as its source text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .errors import ParseError, make_parse_error, snippet_around
from .flow_lexer import Token, TokenType

logger = logging.getLogger(__name__)

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}
TERMINATORS = {",", ")", "]", "}", ";"}
KEYWORD_VALUES = {"true": True, "false": False, "null": None, "undefined": None}


@dataclass
class Expression:
    """An argument kept as source text."""

    text: str


@dataclass
class Block:
    """Body of an arrow function."""

    statements: list[Chain] = field(default_factory=list)
    text: str = ""


@dataclass
class Call:
    """
    One call in a chain.

    Attributes:
        name: Called function or method name
        token: Token of the name, for locations
        type_args: Source text between ``<`` and ``>``, if given
        args: Evaluated arguments
    """

    name: str
    token: Token
    type_args: str | None = None
    args: list[Any] = field(default_factory=list)

    def string_arg(self, index: int) -> str | None:
        if index < len(self.args) and isinstance(self.args[index], str):
            return self.args[index]
        return None

    def block_arg(self) -> Block | None:
        """The first arrow-function body among the arguments."""
        return next((a for a in self.args if isinstance(a, Block)), None)

    @property
    def title(self) -> str | None:
        return self.string_arg(0)


@dataclass
class Chain:
    """``head(...).method(...)...`` statement."""

    calls: list[Call]

    @property
    def head(self) -> Call:
        return self.calls[0]

    @property
    def methods(self) -> list[Call]:
        return self.calls[1:]


def normalize_date(text: str) -> str:
    """Render an ISO timestamp the way a serialized Date reads (UTC, millis)."""
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return text
    if parsed.tzinfo is None:
        return text
    utc = parsed.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _number(text: str) -> int | float | Expression:
    cleaned = text.replace("_", "")
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return float(cleaned)
    except ValueError:
        return Expression(text)


class FlowParser:
    """
    Parser over the tokens of one flow source.

    Statements that are not calls are skipped. A block, argument list or
    literal still open at end of input raises ParseError naming the
    statement it belongs to.
    """

    def __init__(self, tokens: list[Token], text: str, file: Path | str | None = None):
        self.tokens = tokens
        self.text = text
        self.lines = text.split("\n")
        self.file = file
        self.pos = 0

    # Token navigation

    def current_token(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def advance(self) -> Token:
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def at_eof(self) -> bool:
        return self.current_token().type == TokenType.EOF

    def source_between(self, first: int, last: int) -> str:
        """Source text covered by tokens ``first`` to ``last`` inclusive."""
        if last < first:
            return ""
        return self.text[self.tokens[first].start : self.tokens[last].end]

    def unclosed(self, owner: Call | None, opener: Token) -> ParseError:
        anchor = owner.token if owner is not None else opener
        if owner is None:
            message = f"'{opener.value}' is never closed"
        elif owner.title is not None:
            message = f"{owner.name} '{owner.title}' is never closed"
        else:
            message = f"{owner.name}(...) is never closed"
        return make_parse_error(
            message,
            self.file,
            line=anchor.line,
            column=anchor.column,
            snippet=snippet_around(self.lines, anchor.line - 1),
        )

    def matching_index(self, index: int) -> int | None:
        """Index of the token closing the bracket at ``index``."""
        stack: list[str] = []
        for i in range(index, len(self.tokens)):
            token = self.tokens[i]
            if token.type != TokenType.PUNCT:
                continue
            if token.value in OPENERS:
                stack.append(OPENERS[token.value])
            elif token.value in CLOSERS:
                if not stack or stack[-1] != token.value:
                    return None
                stack.pop()
                if not stack:
                    return i
        return None

    def skip_group(self, owner: Call | None) -> None:
        opener = self.current_token()
        end = self.matching_index(self.pos)
        if end is None:
            raise self.unclosed(owner, opener)
        self.pos = end + 1

    def skip_expression(self, owner: Call | None) -> None:
        """Skip to the next terminator outside brackets."""
        while not self.at_eof():
            token = self.current_token()
            if token.type == TokenType.PUNCT:
                if token.value in OPENERS:
                    self.skip_group(owner)
                    continue
                if token.value in TERMINATORS:
                    return
            self.advance()

    # Statements

    def parse_program(self) -> list[Chain]:
        """Parse the whole token stream into top-level call chains."""
        return self.parse_statements(None, None)

    def parse_statements(self, opener: Token | None, owner: Call | None) -> list[Chain]:
        """
        Parse statements up to the ``}`` matching ``opener``.

        With no opener, parse to end of input.
        """
        chains: list[Chain] = []

        while True:
            token = self.current_token()

            if token.type == TokenType.EOF:
                if opener is not None:
                    raise self.unclosed(owner, opener)
                return chains

            if opener is not None and token.is_punct("}"):
                self.advance()
                return chains

            if token.type == TokenType.IDENTIFIER and self.peek_token().is_punct("("):
                chains.append(self.parse_chain())
            elif token.is_punct("{"):
                self.advance()
                chains.extend(self.parse_statements(token, owner))
            elif token.type == TokenType.PUNCT and token.value in ("(", "["):
                self.skip_group(owner)
            else:
                self.advance()

    def type_args_end(self) -> int | None:
        """If a ``<...>`` type argument list starts here and is followed by ``(``, its ``>`` index."""
        depth = 0
        for i in range(self.pos, len(self.tokens)):
            token = self.tokens[i]
            if token.type == TokenType.EOF or token.is_punct(";") or token.is_punct(")"):
                return None
            if token.is_punct("<"):
                depth += 1
            elif token.is_punct(">"):
                depth -= 1
                if depth == 0:
                    following = self.tokens[i + 1] if i + 1 < len(self.tokens) else None
                    return i if following is not None and following.is_punct("(") else None
        return None

    def method_follows(self) -> bool:
        """True at ``.name(`` or ``.name<...>(``."""
        if not self.current_token().is_punct("."):
            return False
        name = self.peek_token()
        after = self.peek_token(2)
        if name.type != TokenType.IDENTIFIER:
            return False
        if after.is_punct("("):
            return True
        if after.is_punct("<"):
            saved = self.pos
            self.pos += 2
            end = self.type_args_end()
            self.pos = saved
            return end is not None
        return False

    def parse_chain(self) -> Chain:
        head = self.parse_call(None)
        calls = [head]
        while self.method_follows():
            self.advance()
            calls.append(self.parse_call(head))
        return Chain(calls)

    def parse_call(self, owner: Call | None) -> Call:
        name = self.advance()
        call = Call(name=name.value, token=name)
        owner = owner or call

        if self.current_token().is_punct("<"):
            end = self.type_args_end()
            if end is not None:
                call.type_args = self.source_between(self.pos + 1, end - 1).strip()
                self.pos = end + 1

        opener = self.advance()
        while True:
            token = self.current_token()
            if token.type == TokenType.EOF:
                raise self.unclosed(owner, opener)
            if token.is_punct(")"):
                self.advance()
                return call
            if token.is_punct(","):
                self.advance()
                continue
            call.args.append(self.parse_value(owner))
            following = self.current_token()
            if not (following.is_punct(",") or following.is_punct(")") or following.type == TokenType.EOF):
                logger.debug("Skipping unexpected %r in arguments of %s", following, call.name)
                self.skip_expression(owner)
                if self.current_token().type == TokenType.PUNCT and self.current_token().value in "]};":
                    self.advance()

    # Values

    def parse_value(self, owner: Call | None) -> Any:
        """Parse one argument or literal value, up to the next terminator."""
        start = self.pos
        value = self.parse_primary(owner)
        token = self.current_token()
        if token.type == TokenType.EOF or (token.type == TokenType.PUNCT and token.value in TERMINATORS):
            return value
        self.skip_expression(owner)
        return Expression(self.source_between(start, self.pos - 1))

    def arrow_follows(self) -> bool:
        token = self.current_token()
        if token.type == TokenType.IDENTIFIER and self.peek_token().type == TokenType.ARROW:
            return True
        if token.is_punct("("):
            end = self.matching_index(self.pos)
            return end is not None and self.tokens[end + 1].type == TokenType.ARROW
        return False

    def parse_arrow(self, owner: Call | None) -> Block | Expression:
        start = self.pos
        if self.current_token().is_punct("("):
            self.skip_group(owner)
        else:
            self.advance()
        self.advance()

        body = self.current_token()
        if body.is_punct("{"):
            self.advance()
            statements = self.parse_statements(body, owner)
            return Block(statements=statements, text=self.source_between(start, self.pos - 1))
        if body.type == TokenType.IDENTIFIER and self.peek_token().is_punct("("):
            chain = self.parse_chain()
            return Block(statements=[chain], text=self.source_between(start, self.pos - 1))
        self.skip_expression(owner)
        return Expression(self.source_between(start, self.pos - 1))

    def parse_primary(self, owner: Call | None) -> Any:
        token = self.current_token()

        if token.type in (TokenType.STRING, TokenType.TEMPLATE):
            self.advance()
            return token.value
        if token.type == TokenType.NUMBER:
            self.advance()
            return _number(token.value)
        if token.is_punct("-") and self.peek_token().type == TokenType.NUMBER:
            self.advance()
            number = _number(self.advance().value)
            return -number if not isinstance(number, Expression) else Expression("-" + number.text)
        if token.value == "async" and token.type == TokenType.IDENTIFIER:
            self.advance()
            if self.arrow_follows():
                return self.parse_arrow(owner)
            self.pos -= 1
        if self.arrow_follows():
            return self.parse_arrow(owner)
        if token.is_punct("{"):
            return self.parse_object(owner)
        if token.is_punct("["):
            return self.parse_array(owner)
        if token.type == TokenType.IDENTIFIER:
            return self.parse_identifier_value(owner)

        start = self.pos
        self.skip_expression(owner)
        return Expression(self.source_between(start, self.pos - 1))

    def parse_identifier_value(self, owner: Call | None) -> Any:
        token = self.current_token()
        following = self.peek_token()

        if token.value in KEYWORD_VALUES and not following.is_punct("."):
            self.advance()
            return KEYWORD_VALUES[token.value]
        if following.type == TokenType.TEMPLATE:
            # Tagged template such as gql`...`
            self.advance()
            return self.advance().value
        if (
            token.value == "new"
            and following.value == "Date"
            and self.peek_token(2).is_punct("(")
            and self.peek_token(3).type == TokenType.STRING
            and self.peek_token(4).is_punct(")")
        ):
            text = self.peek_token(3).value
            self.pos += 5
            return normalize_date(text)

        start = self.pos
        self.skip_expression(owner)
        return Expression(self.source_between(start, self.pos - 1))

    def parse_object(self, owner: Call | None) -> dict[str, Any] | Expression:
        start = self.pos
        opener = self.advance()
        result: dict[str, Any] = {}

        while True:
            token = self.current_token()
            if token.type == TokenType.EOF:
                raise self.unclosed(owner, opener)
            if token.is_punct("}"):
                self.advance()
                return result
            if token.is_punct(","):
                self.advance()
                continue

            if token.type in (TokenType.IDENTIFIER, TokenType.STRING, TokenType.NUMBER):
                key = token.value
                self.advance()
            else:
                # Spread, computed key or method: not a plain literal
                logger.debug("Object literal at line %d is not plain data", opener.line)
                self.skip_to_object_end(start, owner)
                return Expression(self.source_between(start, self.pos - 1))

            following = self.current_token()
            if following.is_punct(":"):
                self.advance()
                result[key] = self.parse_value(owner)
            elif following.is_punct(",") or following.is_punct("}"):
                result[key] = Expression(key)
            else:
                self.skip_to_object_end(start, owner)
                return Expression(self.source_between(start, self.pos - 1))

    def skip_to_object_end(self, index: int, owner: Call | None) -> None:
        end = self.matching_index(index)
        if end is None:
            raise self.unclosed(owner, self.tokens[index])
        self.pos = end + 1

    def parse_array(self, owner: Call | None) -> list[Any]:
        opener = self.advance()
        items: list[Any] = []

        while True:
            token = self.current_token()
            if token.type == TokenType.EOF:
                raise self.unclosed(owner, opener)
            if token.is_punct("]"):
                self.advance()
                return items
            if token.is_punct(","):
                self.advance()
                continue
            items.append(self.parse_value(owner))
            following = self.current_token()
            if following.type == TokenType.PUNCT and following.value in ")};":
                # Stray closer inside the array
                self.advance()
