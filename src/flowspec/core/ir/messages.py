"""Message types (commands, events, state) exchanged by slices."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from .base import IRNode


class MessageType(StrEnum):
    """Kinds of messages."""

    COMMAND = "command"
    EVENT = "event"
    STATE = "state"


class MessageField(IRNode):
    """Field of a message."""

    name: str
    type: str  # e.g. string, number, Date
    required: bool = True


class Message(IRNode):
    """Named command, event or state shape."""

    name: str
    type: MessageType
    fields: list[MessageField] = Field(default_factory=list)
