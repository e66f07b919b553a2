"""
Narrative types for flowspec IR.

Narratives group experiences. Each experience carries a describe/it
specification tree written against a client or server surface.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import Field

from .base import IRNode


class ExperienceTarget(StrEnum):
    """Surface an experience is specified against."""

    CLIENT = "client"
    SERVER = "server"


class SpecLeaf(IRNode):
    """Single ``it``/``should`` statement."""

    type: Literal["it"] = "it"
    title: str


class SpecDescribe(IRNode):
    """
    ``describe`` block grouping further statements.

    A describe with a blank title adds no segment to flattened paths but
    its children are still visited.
    """

    type: Literal["describe"] = "describe"
    title: str = ""
    children: list[SpecNode] = Field(default_factory=list)


SpecNode = Annotated[SpecDescribe | SpecLeaf, Field(discriminator="type")]

SpecDescribe.model_rebuild()


class Experience(IRNode):
    """
    Described interaction surface.

    Attributes:
        id: Token identifying the experience (assigned by add_auto_ids if missing)
        title: Human-readable title
        target: client or server
        spec_tree: Root of the specification tree (usually an untitled describe)
    """

    id: str | None = None
    title: str
    target: ExperienceTarget = ExperienceTarget.CLIENT
    spec_tree: SpecNode = Field(default_factory=SpecDescribe, alias="specTree")


class Narrative(IRNode):
    """Top-level named grouping of experiences."""

    id: str | None = None
    title: str
    experiences: list[Experience] = Field(default_factory=list)


def describe(title: str, children: list[SpecDescribe | SpecLeaf] | None = None) -> SpecDescribe:
    """Build a describe node."""
    return SpecDescribe(title=title, children=list(children or []))


def it(title: str) -> SpecLeaf:
    """Build a leaf node."""
    return SpecLeaf(title=title)
