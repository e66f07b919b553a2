"""
Unit tests for schema document (de)serialization.

Tests the round-trip law, pass-through of unknown fields and SchemaError
reporting.
"""

from __future__ import annotations

import json

import pytest

from flowspec.core import ir
from flowspec.core.errors import SchemaError
from flowspec.core.schema import dumps_schema, loads_schema, to_model, to_schema


class TestRoundTrip:
    """Tests for to_schema/to_model."""

    def test_round_trip(self, simple_model: ir.FlowModel):
        assert to_model(to_schema(simple_model)) == simple_model

    def test_empty_model_round_trip(self):
        assert to_model(to_schema(ir.FlowModel())) == ir.FlowModel()

    def test_document_shape(self, simple_model: ir.FlowModel):
        document = to_schema(simple_model)

        experience = document["narratives"][0]["experiences"][0]
        assert experience["target"] == "client"
        assert experience["specTree"]["type"] == "describe"
        assert [c["type"] for c in experience["specTree"]["children"]] == ["it", "describe"]
        assert document["slices"][0]["type"] == "query"
        assert document["messages"][0]["fields"][0] == {
            "name": "itemId",
            "type": "string",
            "required": True,
        }

    def test_array_order_preserved(self):
        model = ir.FlowModel(
            narratives=[ir.Narrative(title=title) for title in ["Zeta", "Alpha", "Mid"]]
        )

        document = to_schema(model)

        assert [n["title"] for n in document["narratives"]] == ["Zeta", "Alpha", "Mid"]
        assert to_model(document) == model

    def test_react_alias_accepted(self):
        model = to_model({"slices": [{"name": "notify", "type": "react"}]})

        assert model.slices[0].type == ir.SliceType.REACTION
        assert to_schema(model)["slices"][0]["type"] == "reaction"


class TestPassThrough:
    """Unknown fields survive a load/dump cycle."""

    def test_unknown_fields_preserved_at_every_level(self):
        document = {
            "variant": "specs",
            "narratives": [
                {
                    "title": "N",
                    "owner": "team-a",
                    "experiences": [
                        {
                            "title": "E",
                            "specTree": {"type": "describe", "title": "", "children": [], "layout": "grid"},
                            "screenshots": ["a.png"],
                        }
                    ],
                }
            ],
            "slices": [
                {
                    "name": "s",
                    "type": "command",
                    "stream": "items-${id}",
                    "rules": [{"description": "r", "examples": [{"description": "e", "when": {}, "then": []}]}],
                }
            ],
            "integrations": [{"name": "MailChimp"}],
        }

        result = to_schema(to_model(document))

        assert result["variant"] == "specs"
        assert result["integrations"] == [{"name": "MailChimp"}]
        assert result["narratives"][0]["owner"] == "team-a"
        assert result["narratives"][0]["experiences"][0]["screenshots"] == ["a.png"]
        assert result["narratives"][0]["experiences"][0]["specTree"]["layout"] == "grid"
        assert result["slices"][0]["stream"] == "items-${id}"


class TestSchemaErrors:
    """Tests for SchemaError reporting."""

    def test_missing_required_field(self):
        with pytest.raises(SchemaError) as exc_info:
            to_model({"narratives": [{"experiences": []}]})

        assert any(loc.startswith("narratives.0.title") for loc in exc_info.value.locations)

    def test_unknown_slice_type(self):
        with pytest.raises(SchemaError):
            to_model({"slices": [{"name": "s", "type": "saga"}]})

    def test_non_object_document(self):
        with pytest.raises(SchemaError):
            to_model([])  # type: ignore[arg-type]

    def test_invalid_json(self):
        with pytest.raises(SchemaError, match="not valid JSON"):
            loads_schema("{not json")


class TestJsonText:
    """Tests for dumps_schema/loads_schema."""

    def test_dumps_is_stable(self, simple_model: ir.FlowModel):
        rebuilt = loads_schema(dumps_schema(simple_model))

        assert dumps_schema(rebuilt) == dumps_schema(simple_model)

    def test_dumps_keeps_unicode_and_ends_with_newline(self):
        model = ir.FlowModel(narratives=[ir.Narrative(title="Café → Menü")])

        text = dumps_schema(model)

        assert "Café → Menü" in text
        assert text.endswith("\n")
        assert json.loads(text)["narratives"][0]["title"] == "Café → Menü"
