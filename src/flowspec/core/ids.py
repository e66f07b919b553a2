"""
Token generation for model nodes.

Tokens are 64 URL-safe characters drawn from a cryptographic random
source. There is no registry: two calls are independent, and collisions
are made negligible only by the width of the random value.
"""

from __future__ import annotations

import logging
import re
import secrets

from .errors import ValidationError
from .ir import Experience, FlowModel, Narrative, Rule, Slice

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 64
TOKEN_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
AUTO_ID_PREFIX = "AUTO-"

# 48 random bytes encode to exactly 64 base64 characters
_TOKEN_BYTES = TOKEN_LENGTH * 3 // 4

PREFIX_RE = re.compile(r"^[A-Za-z0-9_]+(?:-[A-Za-z0-9_]+)*-?$")


def validate_prefix(prefix: str) -> str:
    """Return the prefix if it is URL-safe, else raise ValidationError."""
    if not PREFIX_RE.match(prefix):
        raise ValidationError(
            f"Invalid token prefix {prefix!r}: use letters, digits, '_' and '-' only"
        )
    return prefix


def generate_token(prefix: str | None = None) -> str:
    """
    Generate a random URL-safe token.

    Args:
        prefix: Optional URL-safe prefix, e.g. ``AUTO-``

    Returns:
        ``prefix`` followed by 64 characters from TOKEN_ALPHABET

    Raises:
        ValidationError: If the prefix contains unsafe characters
    """
    if prefix is not None:
        validate_prefix(prefix)
    return f"{prefix or ''}{secrets.token_urlsafe(_TOKEN_BYTES)}"


def _with_rule_ids(rules: list[Rule], prefix: str) -> list[Rule]:
    return [
        rule if rule.id else rule.model_copy(update={"id": generate_token(prefix)})
        for rule in rules
    ]


def _with_experience_id(experience: Experience, prefix: str) -> Experience:
    if experience.id:
        return experience
    return experience.model_copy(update={"id": generate_token(prefix)})


def _with_narrative_ids(narrative: Narrative, prefix: str) -> Narrative:
    update: dict[str, object] = {
        "experiences": [_with_experience_id(e, prefix) for e in narrative.experiences]
    }
    if not narrative.id:
        update["id"] = generate_token(prefix)
    return narrative.model_copy(update=update)


def _with_slice_ids(slice_: Slice, prefix: str) -> Slice:
    update: dict[str, object] = {"rules": _with_rule_ids(slice_.rules, prefix)}
    if not slice_.id:
        update["id"] = generate_token(prefix)
    return slice_.model_copy(update=update)


def add_auto_ids(model: FlowModel, prefix: str = AUTO_ID_PREFIX) -> FlowModel:
    """
    Return a copy of the model where every narrative, experience, slice
    and rule has an id. Existing ids are kept.
    """
    validate_prefix(prefix)
    result = model.model_copy(
        update={
            "narratives": [_with_narrative_ids(n, prefix) for n in model.narratives],
            "slices": [_with_slice_ids(s, prefix) for s in model.slices],
        }
    )
    logger.debug("Assigned missing ids with prefix %s", prefix)
    return result


def has_all_ids(model: FlowModel) -> bool:
    """True when every narrative, experience, slice and rule has an id."""
    for narrative in model.narratives:
        if not narrative.id:
            return False
        if any(not experience.id for experience in narrative.experiences):
            return False
    for slice_ in model.slices:
        if not slice_.id:
            return False
        if any(not rule.id for rule in slice_.rules):
            return False
    return True
