"""Shared pytest fixtures for flowspec tests."""

from pathlib import Path

import pytest

from flowspec.core import ir


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def flow_fixtures_dir(fixtures_dir: Path) -> Path:
    """Return path to flow source fixtures."""
    return fixtures_dir / "flows"


@pytest.fixture
def kanban_experience() -> ir.Experience:
    """Return a client experience with a nested spec tree."""
    return ir.Experience(
        id="AUTO-K7j0St3Hz",
        title="Kanban Board View",
        target=ir.ExperienceTarget.CLIENT,
        spec_tree=ir.describe(
            "",
            [
                ir.it("display three columns"),
                ir.describe("Drag and drop", [ir.it("move cards"), ir.it("show a shadow")]),
            ],
        ),
    )


@pytest.fixture
def query_slice() -> ir.Slice:
    """Return a query slice in the rule/example dialect."""
    return ir.Slice(
        name="view available items",
        type=ir.SliceType.QUERY,
        rules=[
            ir.Rule(
                description="items show up once added",
                examples=[
                    ir.Example(
                        description="one item",
                        when=[{"eventRef": "ItemAdded", "exampleData": {"itemId": "i-1"}}],
                        then=[{"stateRef": "AvailableItems", "exampleData": {"itemId": "i-1"}}],
                    )
                ],
            )
        ],
    )


@pytest.fixture
def simple_model(kanban_experience: ir.Experience, query_slice: ir.Slice) -> ir.FlowModel:
    """Return a small model covering narratives, slices and messages."""
    return ir.FlowModel(
        narratives=[
            ir.Narrative(id="AUTO-H6i9Rs2Gz", title="Todo Dashboard", experiences=[kanban_experience])
        ],
        slices=[query_slice],
        messages=[
            ir.Message(
                name="ItemAdded",
                type=ir.MessageType.EVENT,
                fields=[ir.MessageField(name="itemId", type="string")],
            )
        ],
    )
