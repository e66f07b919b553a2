"""
Message inference from type declarations.

Flow files declare their messages as type aliases such as::

    type ItemAdded = Event<'ItemAdded', {
      itemId: string;
      note?: string;
    }>;

Declarations of that shape become Message IR nodes; anything else is
left alone.
"""

from __future__ import annotations

import logging
import re

from .ir import Message, MessageField, MessageType
from .type_decls import TypeDeclaration

logger = logging.getLogger(__name__)

MESSAGE_DECL_RE = re.compile(
    r"=\s*(?P<kind>Event|Command|State)\s*<\s*(?P<q>['\"])(?P<name>[^'\"]+)(?P=q)\s*,\s*\{(?P<body>.*)\}\s*>",
    re.DOTALL,
)
FIELD_RE = re.compile(r"^(?P<name>[A-Za-z_$][\w$]*)(?P<optional>\?)?\s*:\s*(?P<type>.+)$", re.DOTALL)

_OPENERS = "{<(["
_CLOSERS = "}>)]"


def _split_members(body: str) -> list[str]:
    """Split an object type body on top-level separators."""
    members: list[str] = []
    depth = 0
    current: list[str] = []
    prev = ""

    for ch in body:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and not (ch == ">" and prev == "="):
            depth -= 1
        if depth == 0 and ch in ";,\n":
            members.append("".join(current))
            current = []
        else:
            current.append(ch)
        prev = ch

    members.append("".join(current))
    return [m.strip() for m in members if m.strip()]


def parse_message(text: str) -> Message | None:
    """Build a message from one declaration's text, or None if it is not one."""
    match = MESSAGE_DECL_RE.search(text)
    if not match:
        return None

    fields = []
    for member in _split_members(match.group("body")):
        field_match = FIELD_RE.match(member)
        if not field_match:
            logger.debug("Skipping unrecognised member %r of %s", member, match.group("name"))
            continue
        fields.append(
            MessageField(
                name=field_match.group("name"),
                type=" ".join(field_match.group("type").split()),
                required=field_match.group("optional") is None,
            )
        )

    return Message(
        name=match.group("name"),
        type=MessageType(match.group("kind").lower()),
        fields=fields,
    )


def infer_messages(lines: list[str], declarations: list[TypeDeclaration]) -> list[Message]:
    """Messages declared in a source, in declaration order."""
    messages = []
    for declaration in declarations:
        message = parse_message(declaration.text(lines))
        if message is not None:
            messages.append(message)
    return messages
