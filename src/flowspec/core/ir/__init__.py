"""
flowspec Internal Representation (IR).

Re-exports every IR type so callers can write ``from flowspec.core import ir``
and use ``ir.Narrative``, ``ir.Slice`` and so on.
"""

from .base import IRNode
from .messages import Message, MessageField, MessageType
from .model import FlowModel
from .narratives import (
    Experience,
    ExperienceTarget,
    Narrative,
    SpecDescribe,
    SpecLeaf,
    SpecNode,
    describe,
    it,
)
from .slices import Example, Rule, Slice, SliceType

__all__ = [
    "IRNode",
    # Messages
    "Message",
    "MessageField",
    "MessageType",
    # Narratives
    "Experience",
    "ExperienceTarget",
    "Narrative",
    "SpecDescribe",
    "SpecLeaf",
    "SpecNode",
    "describe",
    "it",
    # Slices
    "Example",
    "Rule",
    "Slice",
    "SliceType",
    # Root
    "FlowModel",
]
