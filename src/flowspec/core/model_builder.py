"""
Model builder for flow source.

Interprets the call chains produced by the flow parser:

- ``narrative``/``flow`` become narratives
- ``experience`` blocks hold ``describe``/``specs`` and ``it``/``should``
  statements
- ``commandSlice``/``querySlice``/``reactSlice`` become slices; their
  ``.client`` block is a spec tree and their ``.server`` block holds
  ``rule`` and ``example(...).given<T>().when<T>().then<T>()`` statements

Message references in examples come from the type arguments. Whether a
type is an event, command or state is looked up in the message
declarations; unknown types fall back to the slice-type default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .flow_lexer import tokenize
from .flow_parser import Block, Call, Chain, Expression, FlowParser
from .ir import (
    Example,
    Experience,
    ExperienceTarget,
    MessageType,
    Narrative,
    Rule,
    Slice,
    SliceType,
    SpecDescribe,
    SpecLeaf,
)
from .messages import infer_messages
from .type_decls import collect_type_declarations, declared_line_indices

logger = logging.getLogger(__name__)

NARRATIVE_CALLS = ("narrative", "flow")
SLICE_CALLS = {
    "commandSlice": SliceType.COMMAND,
    "querySlice": SliceType.QUERY,
    "reactSlice": SliceType.REACTION,
}
DESCRIBE_CALLS = ("describe", "specs")
LEAF_CALLS = ("it", "should")

INFERRED_TYPE = "InferredType"
DEFAULT_ERROR_TYPE = "IllegalStateError"

REF_KEYS = {
    MessageType.EVENT: "eventRef",
    MessageType.COMMAND: "commandRef",
    MessageType.STATE: "stateRef",
}
OUTCOME_KEYS = {
    SliceType.COMMAND: "eventRef",
    SliceType.QUERY: "stateRef",
    SliceType.REACTION: "commandRef",
}


@dataclass(frozen=True)
class ParsedFlow:
    """Narratives and slices built from one source, in source order."""

    narratives: list[Narrative] = field(default_factory=list)
    slices: list[Slice] = field(default_factory=list)


def _plain(value: Any) -> Any:
    """Example data as JSON: unevaluated expressions become their text."""
    if isinstance(value, Expression | Block):
        return value.text
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _items(call: Call) -> list[Any]:
    if not call.args:
        return []
    data = call.args[0]
    return list(data) if isinstance(data, list) else [data]


def _message(item: Any, type_name: str | None) -> tuple[str, Any]:
    """Type name and data of one example item."""
    if isinstance(item, Mapping) and isinstance(item.get("type"), str):
        data = item.get("data")
        if isinstance(data, Mapping):
            return item["type"], _plain(data)
        return item["type"], _plain({k: v for k, v in item.items() if k != "type"})
    return type_name or INFERRED_TYPE, _plain(item)


class ModelBuilder:
    """
    Builds narratives and slices from one flow source.

    Args:
        source: Full source text, type declarations included
        file: Source name used in error locations
        message_types: Message kinds by name; defaults to the kinds
            declared in ``source`` itself
    """

    def __init__(
        self,
        source: str,
        file: Path | str | None = None,
        message_types: Mapping[str, MessageType] | None = None,
    ):
        self.source = source
        self.file = file
        self.lines = source.split("\n")
        self.declarations = collect_type_declarations(self.lines, file=file)
        if message_types is None:
            message_types = {m.name: m.type for m in infer_messages(self.lines, self.declarations)}
        self.message_types = message_types
        self.narratives: list[Narrative] = []
        self.slices: list[Slice] = []

    def _flow_text(self) -> str:
        """Source with declaration lines blanked; line numbers are kept."""
        covered = declared_line_indices(self.declarations)
        return "\n".join("" if i in covered else line for i, line in enumerate(self.lines))

    def build(self) -> ParsedFlow:
        """
        Interpret the source.

        Raises:
            ParseError: If a block, argument list or literal is never closed
        """
        text = self._flow_text()
        chains = FlowParser(tokenize(text, self.file), text, self.file).parse_program()

        for chain in chains:
            head = chain.head
            if head.name in NARRATIVE_CALLS:
                self.narratives.append(self._narrative(chain))
            elif head.name in SLICE_CALLS:
                logger.warning(
                    "%s:%d: slice '%s' outside a flow ignored", self.file, head.token.line, head.title
                )
            else:
                logger.debug("Ignoring top-level call %s at line %d", head.name, head.token.line)

        return ParsedFlow(narratives=self.narratives, slices=self.slices)

    # Narratives

    def _narrative(self, chain: Chain) -> Narrative:
        head = chain.head
        experiences: list[Experience] = []
        body = head.block_arg()

        for statement in body.statements if body else []:
            call = statement.head
            if call.name == "experience":
                experiences.append(self._experience(statement))
            elif call.name in SLICE_CALLS:
                self.slices.append(self._slice(statement))
            elif call.name in NARRATIVE_CALLS:
                logger.warning(
                    "%s:%d: nested narrative '%s' ignored", self.file, call.token.line, call.title
                )
            else:
                logger.debug("Ignoring %s inside narrative '%s'", call.name, head.title)

        return Narrative(id=head.string_arg(1), title=head.title or "", experiences=experiences)

    def _experience(self, chain: Chain) -> Experience:
        head = chain.head
        target = ExperienceTarget.CLIENT
        body = head.block_arg()

        for method in chain.methods:
            if method.name in ("client", "server"):
                target = ExperienceTarget(method.name)
                body = method.block_arg()

        return Experience(
            id=head.string_arg(1),
            title=head.title or "",
            target=target,
            spec_tree=SpecDescribe(title="", children=self._spec_nodes(body)),
        )

    def _spec_nodes(self, body: Block | None) -> list[SpecDescribe | SpecLeaf]:
        nodes: list[SpecDescribe | SpecLeaf] = []
        for statement in body.statements if body else []:
            call = statement.head
            if call.name in LEAF_CALLS:
                nodes.append(SpecLeaf(title=call.title or ""))
            elif call.name in DESCRIBE_CALLS:
                nodes.append(
                    SpecDescribe(title=call.title or "", children=self._spec_nodes(call.block_arg()))
                )
            else:
                logger.debug("Spec statement %s at line %d ignored", call.name, call.token.line)
        return nodes

    # Slices

    def _slice(self, chain: Chain) -> Slice:
        head = chain.head
        slice_type = SLICE_CALLS[head.name]
        fields: dict[str, Any] = {"id": head.string_arg(1), "name": head.title or "", "type": slice_type}
        rules: list[Rule] = []

        for method in chain.methods:
            if method.name in ("stream", "request"):
                value = method.args[0] if method.args else None
                fields[method.name] = str(_plain(value)) if value is not None else None
            elif method.name == "client":
                fields["client_specs"] = SpecDescribe(
                    title="", children=self._spec_nodes(method.block_arg())
                )
            elif method.name == "server":
                rules.extend(self._server_rules(method.block_arg(), slice_type))
            else:
                logger.debug("Ignoring .%s() on slice '%s'", method.name, head.title)

        return Slice(rules=rules, **fields)

    def _server_rules(self, body: Block | None, slice_type: SliceType) -> list[Rule]:
        rules: list[Rule] = []
        for statement in body.statements if body else []:
            call = statement.head
            if call.name in DESCRIBE_CALLS:
                rules.extend(self._server_rules(call.block_arg(), slice_type))
            elif call.name == "rule":
                examples = [
                    self._example(inner, slice_type)
                    for inner in (call.block_arg().statements if call.block_arg() else [])
                    if inner.head.name == "example"
                ]
                rules.append(Rule(id=call.string_arg(1), description=call.title or "", examples=examples))
            else:
                logger.debug("Server statement %s at line %d ignored", call.name, call.token.line)
        return rules

    # Examples

    def _ref(self, type_name: str, default: str) -> str:
        kind = self.message_types.get(type_name)
        return REF_KEYS[kind] if kind is not None else default

    def _given(self, call: Call) -> list[dict[str, Any]]:
        given = []
        for item in _items(call):
            type_name, data = _message(item, call.type_args)
            given.append({self._ref(type_name, "eventRef"): type_name, "exampleData": data})
        return given

    def _when(self, call: Call, slice_type: SliceType) -> Any:
        raw = call.args[0] if call.args else {}
        if isinstance(raw, list) and len(raw) == 1:
            raw = raw[0]

        if slice_type == SliceType.REACTION or (slice_type == SliceType.QUERY and isinstance(raw, list)):
            events = []
            for item in raw if isinstance(raw, list) else [raw]:
                type_name, data = _message(item, call.type_args)
                events.append({"eventRef": type_name, "exampleData": data})
            return events

        type_name, data = _message(raw, call.type_args)
        if slice_type == SliceType.COMMAND:
            return {"commandRef": type_name, "exampleData": data}
        return {self._ref(type_name, "eventRef"): type_name, "exampleData": data}

    def _then(self, call: Call, slice_type: SliceType) -> list[dict[str, Any]]:
        outcomes = []
        for item in _items(call):
            type_name, data = _message(item, call.type_args)
            if type_name == "Error" or (isinstance(data, Mapping) and "errorType" in data):
                fields = data if isinstance(data, Mapping) else {}
                outcomes.append(
                    {
                        "errorType": fields.get("errorType") or DEFAULT_ERROR_TYPE,
                        "message": fields.get("message"),
                    }
                )
                continue
            key = self._ref(type_name, OUTCOME_KEYS[slice_type])
            outcomes.append({key: type_name, "exampleData": data})
        return outcomes

    def _example(self, chain: Chain, slice_type: SliceType) -> Example:
        given: list[dict[str, Any]] | None = None
        when: Any = None
        then: list[dict[str, Any]] = []
        last = None

        for method in chain.methods:
            if method.name == "given":
                given = self._given(method)
            elif method.name == "when":
                when = self._when(method, slice_type)
            elif method.name == "then":
                then = self._then(method, slice_type)
            elif method.name == "and":
                if last == "given":
                    given = (given or []) + self._given(method)
                elif last == "then":
                    then = then + self._then(method, slice_type)
                else:
                    logger.debug("Ignoring .and() after .%s() at line %d", last, method.token.line)
                continue
            else:
                logger.debug("Ignoring .%s() on example at line %d", method.name, method.token.line)
                continue
            last = method.name

        return Example(description=chain.head.title or "", given=given, when=when, then=then)


def build_flow(
    source: str,
    *,
    file: Path | str | None = None,
    message_types: Mapping[str, MessageType] | None = None,
) -> ParsedFlow:
    """
    Build narratives and slices from flow source.

    Raises:
        ParseError: If a block, argument list or literal is never closed
    """
    parsed = ModelBuilder(source, file, message_types).build()
    logger.debug(
        "Built %d narrative(s) and %d slice(s) from %s",
        len(parsed.narratives),
        len(parsed.slices),
        file or "<source>",
    )
    return parsed


def parse_narratives(source: str, *, file: Path | str | None = None) -> list[Narrative]:
    """Narratives of a flow source."""
    return build_flow(source, file=file).narratives


def parse_slices(source: str, *, file: Path | str | None = None) -> list[Slice]:
    """Slices of a flow source."""
    return build_flow(source, file=file).slices
