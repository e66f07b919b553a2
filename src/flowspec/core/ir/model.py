"""Root container of the flowspec IR."""

from __future__ import annotations

from pydantic import Field

from .base import IRNode
from .messages import Message
from .narratives import Narrative
from .slices import Slice


class FlowModel(IRNode):
    """
    Canonical model produced by the compiler.

    Order of every list is meaningful: it determines generation and
    reporting order downstream.
    """

    narratives: list[Narrative] = Field(default_factory=list)
    slices: list[Slice] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
