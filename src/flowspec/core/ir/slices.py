"""
Slice types for flowspec IR.

A slice is one behaviour unit (command, query or reaction) with
example-based specifications. Example payloads are kept as plain JSON
because their shape depends on the slice type and on the authoring
dialect.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from .base import IRNode
from .narratives import SpecDescribe


class SliceType(StrEnum):
    """Kinds of slices."""

    COMMAND = "command"
    QUERY = "query"
    REACTION = "reaction"


class Example(IRNode):
    """
    Given/When/Then example.

    Attributes:
        description: Example description
        given: Prior events/state (list of ``{eventRef|stateRef, exampleData}``)
        when: Command example mapping, or for queries the list of given events
        then: Expected events, state assertions or errors
    """

    description: str = ""
    given: Any = None
    when: Any = None
    then: Any = Field(default_factory=list)


class Rule(IRNode):
    """Business rule illustrated by examples."""

    id: str | None = None
    description: str = ""
    examples: list[Example] = Field(default_factory=list)


class Slice(IRNode):
    """
    Behaviour unit.

    ``rules`` holds the rule/example dialect (server specs), ``gwt`` the
    flat dialect where each entry already carries ``given``/``then``.
    ``client_specs`` is the describe/should tree of the client surface.
    """

    id: str | None = None
    name: str
    type: SliceType
    description: str | None = None
    stream: str | None = None
    request: str | None = None
    client_specs: SpecDescribe | None = Field(default=None, alias="clientSpecs")
    rules: list[Rule] = Field(default_factory=list)
    gwt: list[Any] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _accept_react_alias(cls, value: Any) -> Any:
        if value == "react":
            return SliceType.REACTION
        return value
