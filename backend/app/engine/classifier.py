"""Operation classifier: one sub-instruction -> one Operation.

Families are tried strictly in order background -> modification -> addition
-> removal (via the normalizer), then the vague fallbacks. Anything matching
nothing becomes an UnparsedInstruction; it is never coerced into an edit.
"""

from __future__ import annotations

import logging

from app.engine.normalizer import NormalizedInstruction, canonicalize, normalize
from app.engine.registry import Family, get_registry
from app.models.operations import (
    BackgroundEdit,
    BaseOperation,
    GeneralEdit,
    ObjectAddition,
    ObjectModification,
    ObjectRemoval,
    UnparsedInstruction,
)

logger = logging.getLogger(__name__)

# Rule confidence 1.0 means "certain match"; operations carry calibrated values.
_CATEGORY_CONFIDENCE = {
    "background": 0.9,
    "addition": 0.85,
    "colorChange": 0.8,
    "modification": 0.8,
    "removal": 0.85,
}


def build_operation(norm: NormalizedInstruction, source_text: str) -> BaseOperation:
    """Turn a normalized instruction into an Operation (no fallback rules)."""
    f = norm.fields
    spec_conf = get_registry().get(norm.rule_id).confidence if norm.rule_id else 1.0
    confidence = round(_CATEGORY_CONFIDENCE.get(norm.category, 0.5) * spec_conf, 3)
    common = {"source_text": source_text, "confidence": confidence, "rule_id": norm.rule_id}

    if norm.category == "background":
        return BackgroundEdit(
            target_description=f["description"],
            is_removal=bool(f["removal"]),
            **common,
        )
    if norm.category == "addition":
        return ObjectAddition(object=f["object"], key=f["key"], location=f.get("location"), **common)
    if norm.category in ("colorChange", "modification"):
        return ObjectModification(
            modified=f["target"],
            new_value=f["value"],
            is_color=norm.category == "colorChange",
            **common,
        )
    if norm.category == "removal":
        return ObjectRemoval(removed=f["target"], **common)
    raise ValueError(f"Cannot build an operation for category {norm.category!r}")


def classify(sub_instruction: str) -> BaseOperation:
    norm = normalize(sub_instruction)
    if norm.category != "unknown":
        op = build_operation(norm, sub_instruction)
        logger.debug("Classified %r as %s via %s", sub_instruction, op.type, norm.rule_id)  # type: ignore[attr-defined]
        return op

    hit = get_registry().match(canonicalize(sub_instruction), {Family.FALLBACK})
    if hit is not None:
        logger.debug("Vague instruction %r -> general edit via %s", sub_instruction, hit.spec.id)
        return GeneralEdit(
            source_text=sub_instruction,
            subject=hit.fields["target"],
            note=hit.fields["note"],
            confidence=hit.spec.confidence,
            rule_id=hit.spec.id,
        )

    logger.debug("No pattern matched %r", sub_instruction)
    return UnparsedInstruction(source_text=sub_instruction)
