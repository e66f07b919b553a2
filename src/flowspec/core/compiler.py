"""
Compiler entry points.

Collaborators hand in source text (the compiler never reads files) and
get back model fragments or a complete FlowModel.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .ir import Experience, FlowModel, Message, MessageType, Narrative, Rule, Slice
from .messages import infer_messages
from .model_builder import build_flow
from .separator import extract_flow_code
from .type_decls import TypeDeclaration, collect_type_declarations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledSource:
    """Model fragment built from one source file."""

    narratives: list[Narrative] = field(default_factory=list)
    slices: list[Slice] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    declarations: list[TypeDeclaration] = field(default_factory=list)
    flow_lines: list[str] = field(default_factory=list)


def compile_source(
    source: str,
    *,
    file: Path | str | None = None,
    message_types: Mapping[str, MessageType] | None = None,
) -> CompiledSource:
    """
    Compile one flow source into narratives, slices and messages.

    ``message_types`` classifies the types named in examples; by default
    only the messages declared in ``source`` are known.

    Raises:
        ParseError: If a block, argument list or literal is never closed
    """
    lines = source.split("\n")
    declarations = collect_type_declarations(lines, file=file)
    messages = infer_messages(lines, declarations)
    if message_types is None:
        message_types = {m.name: m.type for m in messages}
    parsed = build_flow(source, file=file, message_types=message_types)
    return CompiledSource(
        narratives=parsed.narratives,
        slices=parsed.slices,
        messages=messages,
        declarations=declarations,
        flow_lines=extract_flow_code(lines, declarations),
    )


def _declared_message_types(sources: Mapping[str, str]) -> dict[str, MessageType]:
    """Message kinds declared across all sources, first definition wins."""
    kinds: dict[str, MessageType] = {}
    for name, text in sources.items():
        lines = text.split("\n")
        for message in infer_messages(lines, collect_type_declarations(lines, file=name)):
            kinds.setdefault(message.name, message.type)
    return kinds


def compile_sources(
    sources: Mapping[str, str],
    *,
    base: FlowModel | None = None,
) -> FlowModel:
    """
    Compile several sources into one model.

    Narratives and slices keep source order. Messages are deduplicated by
    name, first definition wins, and a message declared in one source
    classifies example references in every other. With a ``base`` model,
    ids are inherited by title/name, slices only the base knows are kept
    after the compiled ones, and extra fields are carried over.
    """
    narratives: list[Narrative] = []
    slices: list[Slice] = []
    messages: dict[str, Message] = {}
    message_types = _declared_message_types(sources)

    for name, text in sources.items():
        compiled = compile_source(text, file=name, message_types=message_types)
        narratives.extend(compiled.narratives)
        slices.extend(compiled.slices)
        for message in compiled.messages:
            if message.name in messages:
                logger.warning("Duplicate message %s in %s ignored", message.name, name)
                continue
            messages[message.name] = message

    update: dict[str, list] = {
        "narratives": narratives,
        "slices": slices,
        "messages": list(messages.values()),
    }
    if base is not None:
        update["narratives"] = inherit_ids(narratives, base.narratives)
        update["slices"] = inherit_slice_ids(slices, base.slices)
        return base.model_copy(update=update)
    return FlowModel(**update)


def _inherit_experience_ids(experiences: list[Experience], previous: list[Experience]) -> list[Experience]:
    known = {e.title: e.id for e in previous if e.id}
    return [
        e if e.id or e.title not in known else e.model_copy(update={"id": known[e.title]})
        for e in experiences
    ]


def inherit_ids(narratives: list[Narrative], previous: list[Narrative]) -> list[Narrative]:
    """
    Reuse ids from a previous compilation, matching by title.

    Keeps a re-export of unchanged sources byte-identical when the sources
    themselves carry no ids.
    """
    by_title = {n.title: n for n in previous}
    result = []
    for narrative in narratives:
        earlier = by_title.get(narrative.title)
        if earlier is None:
            result.append(narrative)
            continue
        update: dict[str, object] = {
            "experiences": _inherit_experience_ids(narrative.experiences, earlier.experiences)
        }
        if not narrative.id and earlier.id:
            update["id"] = earlier.id
        result.append(narrative.model_copy(update=update))
    return result


def _inherit_rule_ids(rules: list[Rule], previous: list[Rule]) -> list[Rule]:
    known = {r.description: r.id for r in previous if r.id}
    return [
        r if r.id or r.description not in known else r.model_copy(update={"id": known[r.description]})
        for r in rules
    ]


def inherit_slice_ids(slices: list[Slice], previous: list[Slice]) -> list[Slice]:
    """
    Reuse slice and rule ids from a previous compilation.

    Slices match by name, rules by description. Slices present only in
    ``previous`` follow the compiled ones in their earlier order.
    """
    by_name = {s.name: s for s in previous}
    result = []
    for slice_ in slices:
        earlier = by_name.get(slice_.name)
        if earlier is None:
            result.append(slice_)
            continue
        update: dict[str, object] = {"rules": _inherit_rule_ids(slice_.rules, earlier.rules)}
        if not slice_.id and earlier.id:
            update["id"] = earlier.id
        result.append(slice_.model_copy(update=update))

    compiled_names = {s.name for s in slices}
    result.extend(s for s in previous if s.name not in compiled_names)
    return result
