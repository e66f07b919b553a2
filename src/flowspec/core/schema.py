"""
Schema document (de)serialization.

The schema document is the JSON form of a FlowModel that code generators
read. It mirrors the IR field for field, keeps list order, and carries any
fields this compiler does not interpret through unchanged.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import SchemaError
from .ir import FlowModel

logger = logging.getLogger(__name__)

SchemaDocument = dict[str, Any]


def to_schema(model: FlowModel) -> SchemaDocument:
    """Convert a model into a JSON-compatible schema document."""
    return model.model_dump(mode="json", by_alias=True)


def _describe_errors(exc: PydanticValidationError) -> list[str]:
    locations = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "<root>"
        locations.append(f"{path}: {error['msg']}")
    return locations


def to_model(document: SchemaDocument) -> FlowModel:
    """
    Convert a schema document into a model.

    Raises:
        SchemaError: If required fields are missing or have the wrong shape
    """
    if not isinstance(document, dict):
        raise SchemaError(f"Schema document must be an object, got {type(document).__name__}")
    try:
        return FlowModel.model_validate(document)
    except PydanticValidationError as e:
        locations = _describe_errors(e)
        raise SchemaError(
            "Invalid schema document:\n  " + "\n  ".join(locations),
            locations=locations,
        ) from e


def dumps_schema(model: FlowModel) -> str:
    """Serialize a model to schema JSON text (stable for equal models)."""
    return json.dumps(to_schema(model), indent=2, ensure_ascii=False) + "\n"


def loads_schema(text: str) -> FlowModel:
    """
    Parse schema JSON text into a model.

    Raises:
        SchemaError: If the text is not JSON or not a valid schema document
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Schema document is not valid JSON: {e}") from e
    model = to_model(document)
    logger.debug(
        "Loaded schema with %d narrative(s), %d slice(s)", len(model.narratives), len(model.slices)
    )
    return model
