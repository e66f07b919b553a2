"""
Given/When/Then extraction for slices.

Two authoring dialects exist side by side:

- rule/example: ``slice.rules[].examples[]`` with ``given``/``when``/``then``
- flat: ``slice.gwt[]`` entries that already carry ``given``/``then``

Extraction is permissive: hand-authored specs are heterogeneous, so
entries with an unexpected shape are skipped rather than failing the
whole slice.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from .errors import ParseError
from .ir import Slice, SliceType

logger = logging.getLogger(__name__)


def _example_entries(slice_: Slice) -> Iterator[dict[str, Any]]:
    """Rule/example entries in rule order, then example order."""
    for rule in slice_.rules:
        for example in rule.examples:
            yield {"given": example.given, "when": example.when, "then": example.then}


def _flat_entries(slice_: Slice) -> Iterator[Mapping[str, Any]]:
    for entry in slice_.gwt or []:
        if isinstance(entry, Mapping):
            yield entry
        else:
            logger.debug("Skipping malformed gwt entry in slice %s: %r", slice_.name, entry)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def _state_assertions(then: Any) -> list[dict[str, Any]]:
    """Keep only ``then`` entries that reference a state."""
    assertions: list[dict[str, Any]] = []
    for item in _as_list(then):
        if isinstance(item, Mapping) and isinstance(item.get("stateRef"), str):
            data = item.get("exampleData")
            assertions.append({**item, "exampleData": {} if data is None else data})
    return assertions


def build_query_gwt_mapping(slice_: Slice) -> list[dict[str, list[Any]]]:
    """
    Build the ``{given, then}`` pairs for a query slice.

    For queries the example's ``when`` holds the given events, since a
    query has no behavioural trigger distinct from its preconditions.
    Non-query slices produce an empty list.
    """
    if slice_.type != SliceType.QUERY:
        return []

    mapping: list[dict[str, list[Any]]] = []

    for entry in _example_entries(slice_):
        when = entry["when"]
        given = _as_list(when) if when is not None else _as_list(entry["given"])
        mapping.append({"given": given, "then": _state_assertions(entry["then"])})

    for entry in _flat_entries(slice_):
        mapping.append(
            {"given": _as_list(entry.get("given")), "then": _state_assertions(entry.get("then"))}
        )

    return mapping


def _when_data(when: Any) -> Any:
    if isinstance(when, list):
        first = when[0] if when else None
        return first.get("exampleData") if isinstance(first, Mapping) else None
    return when.get("exampleData")


def _merge_key(when: Any) -> str:
    return json.dumps(_when_data(when) or {}, sort_keys=True, default=str)


def _has_key(items: list[Any], key: str) -> bool:
    return any(isinstance(item, Mapping) and key in item for item in items)


def _failing_fields(entry: dict[str, Any], successful: Mapping[str, Any]) -> list[str]:
    """Fields left empty in an error example that the successful example fills."""
    if not _has_key(entry["then"], "errorType"):
        return []
    data = _when_data(entry["when"])
    if not isinstance(data, Mapping):
        return []
    return [
        key
        for key, value in data.items()
        if value == "" and successful.get(key) not in ("", None)
    ]


def build_command_gwt_mapping(slice_: Slice) -> dict[str, list[dict[str, Any]]]:
    """
    Group a command slice's examples by the command they exercise.

    Examples whose ``when`` carries the same example data are merged,
    concatenating their ``given`` and ``then`` lists. Each merged entry
    gets ``failing_fields`` naming the inputs an error example blanks out.

    Raises:
        ParseError: If an example's ``when`` is neither a mapping nor a list
    """
    if slice_.type != SliceType.COMMAND:
        return {}

    grouped: dict[str, list[dict[str, Any]]] = {}
    entries = list(_example_entries(slice_)) + [
        {"given": e.get("given"), "when": e.get("when"), "then": e.get("then")}
        for e in _flat_entries(slice_)
    ]

    for entry in entries:
        when = entry["when"]
        if when is None:
            logger.debug("Skipping example without when in slice %s", slice_.name)
            continue
        if isinstance(when, list):
            # Event-triggered example; not addressed to a command
            continue
        if not isinstance(when, Mapping):
            raise ParseError(
                f"Slice '{slice_.name}': expected a command example in 'when', got {type(when).__name__}"
            )
        command = when.get("commandRef")
        if not isinstance(command, str) or not command:
            logger.debug("Skipping example without commandRef in slice %s", slice_.name)
            continue
        grouped.setdefault(command, []).append(
            {"given": _as_list(entry["given"]), "when": when, "then": _as_list(entry["then"])}
        )

    mapping: dict[str, list[dict[str, Any]]] = {}
    for command, conditions in grouped.items():
        merged: dict[str, dict[str, Any]] = {}
        for condition in conditions:
            key = _merge_key(condition["when"])
            if key in merged:
                merged[key]["given"].extend(condition["given"])
                merged[key]["then"].extend(condition["then"])
            else:
                merged[key] = {
                    "given": list(condition["given"]),
                    "when": condition["when"],
                    "then": list(condition["then"]),
                }

        successful: Mapping[str, Any] = {}
        for condition in merged.values():
            if _has_key(condition["then"], "eventRef"):
                data = _when_data(condition["when"])
                successful = data if isinstance(data, Mapping) else {}
                break

        mapping[command] = [
            {**condition, "failing_fields": _failing_fields(condition, successful)}
            for condition in merged.values()
        ]

    return mapping
