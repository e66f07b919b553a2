"""
Specification tree flattening.

Turns describe/it trees into path strings such as
``"Cart → totals → shows the subtotal"``. Paths come out in depth-first,
left-to-right leaf order, which is the order specifications are reported
and tested in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .ir import Experience, SpecDescribe, SpecLeaf

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = " → "


def flatten_client_specs(
    nodes: Iterable[object],
    separator: str = DEFAULT_SEPARATOR,
) -> list[str]:
    """
    Flatten specification nodes into path strings, one per leaf.

    A describe with a blank title adds no path segment; its children are
    still visited. Objects that are not spec nodes are skipped.
    """
    paths: list[str] = []
    path: list[str] = []

    def visit(node: object) -> None:
        if isinstance(node, SpecLeaf):
            paths.append(separator.join([*path, node.title]))
        elif isinstance(node, SpecDescribe):
            title = node.title.strip()
            if title:
                path.append(title)
            for child in node.children:
                visit(child)
            if title:
                path.pop()
        else:
            logger.debug("Skipping non-spec node %r", node)

    for node in nodes:
        visit(node)

    return paths


def count_leaves(nodes: Iterable[object]) -> int:
    """Number of leaf statements below the given nodes."""
    total = 0
    for node in nodes:
        if isinstance(node, SpecLeaf):
            total += 1
        elif isinstance(node, SpecDescribe):
            total += count_leaves(node.children)
    return total


def flatten_experience(experience: Experience, separator: str = DEFAULT_SEPARATOR) -> list[str]:
    """Flattened specification paths of one experience."""
    return flatten_client_specs([experience.spec_tree], separator)
