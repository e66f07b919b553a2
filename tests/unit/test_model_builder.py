"""Unit tests for building narratives and slices from flow source."""

from __future__ import annotations

import pytest

from flowspec.core import ir
from flowspec.core.errors import ParseError
from flowspec.core.model_builder import build_flow, parse_narratives, parse_slices
from flowspec.core.specs import flatten_client_specs, flatten_experience

KANBAN = """import { experience, narrative, it, describe } from '@auto-engineer/narrative';

type Task = State<'Task', { id: string }>;

narrative('Todo Dashboard', 'AUTO-H6i9Rs2Gz', () => {
  experience('Kanban Board View', 'AUTO-K7j0St3Hz').client(() => {
    it('display three columns');
    describe('Drag and drop', () => {
      it('moves cards');
      it('shows a shadow');
    });
  });
  experience('Sync', 'AUTO-S1').server(() => {
    should('persist tasks');
  });
  experience('Placeholder');
});
"""


class TestParseNarratives:
    """Tests for parse_narratives."""

    def test_narrative_structure(self):
        narratives = parse_narratives(KANBAN)

        assert len(narratives) == 1
        narrative = narratives[0]
        assert narrative.id == "AUTO-H6i9Rs2Gz"
        assert narrative.title == "Todo Dashboard"
        assert [e.title for e in narrative.experiences] == ["Kanban Board View", "Sync", "Placeholder"]

    def test_experience_targets_and_ids(self):
        experiences = parse_narratives(KANBAN)[0].experiences

        assert experiences[0].id == "AUTO-K7j0St3Hz"
        assert experiences[0].target == ir.ExperienceTarget.CLIENT
        assert experiences[1].target == ir.ExperienceTarget.SERVER
        assert experiences[2].id is None

    def test_spec_tree(self):
        experiences = parse_narratives(KANBAN)[0].experiences

        assert flatten_experience(experiences[0]) == [
            "display three columns",
            "Drag and drop → moves cards",
            "Drag and drop → shows a shadow",
        ]
        assert flatten_experience(experiences[1]) == ["persist tasks"]
        assert flatten_experience(experiences[2]) == []

    def test_flow_alias_and_escaped_quotes(self):
        source = "\n".join(
            [
                "flow('Checkout', () => {",
                "  experience('Cart').client(() => {",
                "    it('doesn\\'t lose items');",
                "  });",
                "});",
            ]
        )

        narrative = parse_narratives(source)[0]

        assert narrative.title == "Checkout"
        assert flatten_experience(narrative.experiences[0]) == ["doesn't lose items"]

    def test_calls_in_comments_ignored(self):
        source = "\n".join(
            [
                "/*",
                "narrative('Commented', () => {",
                "*/",
                "narrative('Real', () => {});",
            ]
        )

        assert [n.title for n in parse_narratives(source)] == ["Real"]

    def test_multiple_narratives_in_order(self):
        source = "narrative('B', () => {\n});\nnarrative('A', () => {\n});\n"

        assert [n.title for n in parse_narratives(source)] == ["B", "A"]

    def test_unclosed_block_names_innermost_statement(self):
        source = "narrative('Open', () => {\n  experience('E').client(() => {\n"

        with pytest.raises(ParseError, match="experience 'E' is never closed") as exc_info:
            parse_narratives(source, file="open.narrative.ts")

        assert "open.narrative.ts:2:3" in str(exc_info.value)

    def test_unclosed_narrative_raises(self):
        source = "narrative('Open', () => {\n  experience('E');\n"

        with pytest.raises(ParseError, match="narrative 'Open' is never closed") as exc_info:
            parse_narratives(source, file="open.narrative.ts")

        assert "open.narrative.ts:1:1" in str(exc_info.value)


class TestParseSlices:
    """Tests for slices built from flow source."""

    @pytest.fixture
    def items_source(self, flow_fixtures_dir):
        return (flow_fixtures_dir / "items.flow.ts").read_text(encoding="utf-8")

    def test_items_fixture_slices(self, items_source):
        slices = parse_slices(items_source)

        assert [(s.name, s.type) for s in slices] == [
            ("add item", ir.SliceType.COMMAND),
            ("view items", ir.SliceType.QUERY),
        ]
        assert slices[0].stream == "item-${id}"
        assert "query AvailableItems" in slices[1].request

    def test_client_specs(self, items_source):
        command, query = parse_slices(items_source)

        assert flatten_client_specs([command.client_specs]) == [
            "Add item form → have a description field",
            "Add item form → disable submit while empty",
        ]
        assert flatten_client_specs([query.client_specs]) == ["list every added item"]

    def test_command_examples(self, items_source):
        rule = parse_slices(items_source)[0].rules[0]

        assert rule.description == "description is required"
        assert [e.description for e in rule.examples] == ["adds an item", "rejects a blank description"]
        added, rejected = rule.examples
        assert added.given is None
        assert added.when == {"commandRef": "AddItem", "exampleData": {"itemId": "i-1", "description": "milk"}}
        assert added.then == [
            {
                "eventRef": "ItemAdded",
                "exampleData": {"itemId": "i-1", "description": "milk", "addedAt": "2024-01-15T10:00:00.000Z"},
            }
        ]
        assert rejected.then == [{"errorType": "ValidationError", "message": "description is required"}]

    def test_query_examples(self, items_source):
        example = parse_slices(items_source)[1].rules[0].examples[0]

        assert example.given[0]["eventRef"] == "ItemAdded"
        assert example.when["eventRef"] == "ItemAdded"
        assert example.then == [{"stateRef": "AvailableItems", "exampleData": {"itemId": "i-1"}}]

    def test_narrative_holds_no_slices(self, items_source):
        parsed = build_flow(items_source)

        assert [n.title for n in parsed.narratives] == ["Items"]
        assert parsed.narratives[0].experiences == []

    def test_react_slice_when_is_event_list(self):
        source = "\n".join(
            [
                "type Shipped = Event<'Shipped', { id: string }>;",
                "type Notify = Command<'Notify', { id: string }>;",
                "flow('Shipping', () => {",
                "  reactSlice('notify on ship', 'S-1').server(() => {",
                "    rule('notifies', 'R-1', () => {",
                "      example('shipped').when<Shipped>({ id: 'o-1' }).then<Notify>({ id: 'o-1' });",
                "    });",
                "  });",
                "});",
            ]
        )

        reaction = parse_slices(source)[0]

        assert reaction.id == "S-1"
        assert reaction.type == ir.SliceType.REACTION
        assert reaction.rules[0].id == "R-1"
        example = reaction.rules[0].examples[0]
        assert example.when == [{"eventRef": "Shipped", "exampleData": {"id": "o-1"}}]
        assert example.then == [{"commandRef": "Notify", "exampleData": {"id": "o-1"}}]

    def test_given_and_then_lists_extended_by_and(self):
        source = "\n".join(
            [
                "flow('Cart', () => {",
                "  commandSlice('checkout').server(() => {",
                "    rule('totals', () => {",
                "      example('two items')",
                "        .given<ItemAdded>({ id: 'a' })",
                "        .and<ItemAdded>({ id: 'b' })",
                "        .when<Checkout>({})",
                "        .then<CheckedOut>({ total: 2 })",
                "        .and<ReceiptSent>({ total: 2 });",
                "    });",
                "  });",
                "});",
            ]
        )

        example = parse_slices(source)[0].rules[0].examples[0]

        assert [g["exampleData"]["id"] for g in example.given] == ["a", "b"]
        assert [t["eventRef"] for t in example.then] == ["CheckedOut", "ReceiptSent"]

    def test_typed_message_objects_and_untyped_items(self):
        source = "\n".join(
            [
                "flow('F', () => {",
                "  commandSlice('c').server(() => {",
                "    rule('r', () => {",
                "      example('e')",
                "        .given([{ type: 'Seeded', data: { n: 1 } }, { n: 2 }])",
                "        .when({ type: 'Run', data: { n: 3 } })",
                "        .then({ type: 'Error', data: { message: 'nope' } });",
                "    });",
                "  });",
                "});",
            ]
        )

        example = parse_slices(source)[0].rules[0].examples[0]

        assert example.given == [
            {"eventRef": "Seeded", "exampleData": {"n": 1}},
            {"eventRef": "InferredType", "exampleData": {"n": 2}},
        ]
        assert example.when == {"commandRef": "Run", "exampleData": {"n": 3}}
        assert example.then == [{"errorType": "IllegalStateError", "message": "nope"}]

    def test_message_types_classify_references(self):
        source = "\n".join(
            [
                "flow('F', () => {",
                "  querySlice('q').server(() => {",
                "    rule('r', () => {",
                "      example('e').given<Snapshot>({ n: 1 }).when<Seen>([{ n: 1 }, { n: 2 }]).then<Seen>({ n: 2 });",
                "    });",
                "  });",
                "});",
            ]
        )
        kinds = {"Snapshot": ir.MessageType.STATE, "Seen": ir.MessageType.EVENT}

        example = build_flow(source, message_types=kinds).slices[0].rules[0].examples[0]

        assert example.given == [{"stateRef": "Snapshot", "exampleData": {"n": 1}}]
        assert [w["exampleData"] for w in example.when] == [{"n": 1}, {"n": 2}]
        assert example.then == [{"eventRef": "Seen", "exampleData": {"n": 2}}]

    def test_slice_outside_flow_ignored(self):
        source = "commandSlice('loose').server(() => {});\nflow('F', () => {});\n"

        parsed = build_flow(source)

        assert parsed.slices == []
        assert [n.title for n in parsed.narratives] == ["F"]

    def test_non_literal_data_kept_as_text(self):
        source = "\n".join(
            [
                "flow('F', () => {",
                "  commandSlice('c').server(() => {",
                "    rule('r', () => {",
                "      example('e').when<Add>({ id: makeId(), at: now }).then<Added>([]);",
                "    });",
                "  });",
                "});",
            ]
        )

        example = parse_slices(source)[0].rules[0].examples[0]

        assert example.when == {"commandRef": "Add", "exampleData": {"id": "makeId()", "at": "now"}}
        assert example.then == []
