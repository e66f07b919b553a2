"""Shared base class for flowspec IR nodes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class IRNode(BaseModel):
    """Base for every IR node.

    Nodes are immutable. Fields this compiler does not interpret are kept
    as extras so a schema document survives a load/dump cycle unchanged.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)
