"""Structured prompt mutator: resolved operations -> new scene descriptor.

The outgoing ``background`` always starts as the chain's current background
description; only a BackgroundEdit in this refinement overwrites it. That
makes background persistence and per-request override one code path.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from app.engine.background import describe_background
from app.engine.vocabulary import (
    COLOR_ADJECTIVES,
    COLORS,
    MAIN_SUBJECT,
    RELATED_PARTS,
    TARGET_SYNONYMS,
    alternation,
    canonical_target,
    normalize_color,
)
from app.models.chain import DEFAULT_BACKGROUND, BackgroundState
from app.models.operations import (
    BackgroundEdit,
    BaseOperation,
    GeneralEdit,
    ObjectAddition,
    ObjectModification,
    ObjectRemoval,
    describe,
)
from app.models.scene import StructuredPrompt

logger = logging.getLogger(__name__)

_ANY_COLOR = alternation([*COLORS, *COLOR_ADJECTIVES, "grey"])

# Richer records for objects we know how to place. Values are format strings
# over {object} and {color}.
OBJECT_TEMPLATES: dict[str, dict[str, str]] = {
    "hat": {
        "description": "{object} worn on the head",
        "location": "on top of the head",
        "relative_size": "medium, proportional to the head",
        "texture": "soft fabric",
        "appearance_details": "sits naturally on the head at a slight angle",
        "orientation": "upright, following the tilt of the head",
    },
    "sunglasses": {
        "description": "{object} worn over the eyes",
        "location": "over the eyes",
        "relative_size": "spanning the width of the face",
        "texture": "glossy lenses with a solid frame",
        "appearance_details": "dark reflective lenses resting on the nose",
        "orientation": "horizontal across the face",
    },
    "cigar": {
        "description": "{object} held in the mouth",
        "location": "in the corner of the mouth",
        "relative_size": "small",
        "texture": "rolled tobacco leaf",
        "appearance_details": "glowing tip with a thin wisp of smoke",
        "orientation": "angled slightly downward",
    },
    "teeth": {
        "description": "{object} visible in the mouth",
        "location": "inside the mouth",
        "relative_size": "small",
        "texture": "smooth, polished",
        "appearance_details": "a full row of teeth in a wide grin",
        "orientation": "facing forward",
    },
    "necklace": {
        "description": "{object} around the neck",
        "location": "around the neck, resting on the chest",
        "relative_size": "small",
        "texture": "polished metal",
        "appearance_details": "hangs naturally around the neck",
        "orientation": "draped",
    },
    "chain": {
        "description": "{object} around the neck",
        "location": "around the neck, resting on the chest",
        "relative_size": "small",
        "texture": "heavy metal links",
        "appearance_details": "thick links catching the light",
        "orientation": "draped",
    },
    "crown": {
        "description": "{object} on the head",
        "location": "on top of the head",
        "relative_size": "medium",
        "texture": "polished metal with jewels",
        "appearance_details": "pointed tips set with small gems",
        "orientation": "upright",
    },
}


def _generic_record(obj: str, location: str | None) -> dict[str, Any]:
    return {
        "description": obj,
        "location": location or "placed naturally in the scene",
        "relative_size": "small",
        "shape_and_color": "matching the design palette",
        "texture": "consistent with the art style",
        "appearance_details": f"{obj} integrated into the design",
        "number_of_objects": 1,
        "orientation": "upright",
    }


def _color_in(text: str) -> str | None:
    for word in text.split():
        color = normalize_color(word)
        if color is not None:
            return color
    return None


def object_record(op: ObjectAddition) -> dict[str, Any]:
    """Descriptor record for an added object."""
    record = _generic_record(op.object, op.location)
    template = OBJECT_TEMPLATES.get(canonical_target(op.key))
    if template:
        record.update({k: v.format(object=op.object) for k, v in template.items()})
        if op.location:
            record["location"] = op.location
    color = _color_in(op.object)
    if color:
        record["shape_and_color"] = color
    return record


# -- Matching --------------------------------------------------------------------


def _names(target: str) -> list[str]:
    """The target plus every surface word that maps onto it."""
    canon = canonical_target(target)
    names = {target, canon}
    names.update(k for k, v in TARGET_SYNONYMS.items() if v == canon)
    return sorted(n for n in names if n and n != MAIN_SUBJECT)


def _mentions(record: dict[str, Any], names: list[str], fields: tuple[str, ...]) -> bool:
    for name in names:
        pattern = re.compile(rf"\b{re.escape(name)}(?:s|es)?\b")
        if any(pattern.search(str(record.get(f, "")).lower()) for f in fields):
            return True
    return False


def _recolor_text(text: str, names: list[str], color: str) -> str:
    """Swap the color word directly in front of the target ("white teeth" -> "gold teeth")."""
    for name in names:
        text = re.sub(
            rf"\b{_ANY_COLOR}(\s+{re.escape(name)}(?:s|es)?)\b",
            rf"{color}\1",
            text,
            flags=re.IGNORECASE,
        )
    return text


def _set_color(record: dict[str, Any], names: list[str], color: str) -> None:
    record["description"] = _recolor_text(str(record.get("description", "")), names, color)
    existing = str(record.get("shape_and_color", ""))
    if re.search(rf"\b{_ANY_COLOR}\b", existing, re.IGNORECASE):
        record["shape_and_color"] = re.sub(rf"\b{_ANY_COLOR}\b", color, existing, flags=re.IGNORECASE)
    else:
        record["shape_and_color"] = color


def _append_detail(record: dict[str, Any], detail: str) -> None:
    current = str(record.get("appearance_details", "")).strip()
    record["appearance_details"] = f"{current}; {detail}" if current else detail


# -- Per-operation application -------------------------------------------------------


def _apply_modification(prompt: StructuredPrompt, op: ObjectModification) -> str:
    target = canonical_target(op.modified)
    color = normalize_color(op.new_value)
    shown = color or op.new_value

    if target in (MAIN_SUBJECT, "everything"):
        records = prompt.objects if target == "everything" else prompt.objects[:1]
        for record in records:
            if color:
                record["shape_and_color"] = color
            else:
                _append_detail(record, op.new_value)
        # With no records the summary line alone carries the edit.
        return f"made {target} {shown}"

    names = _names(op.modified)
    direct = [o for o in prompt.objects if _mentions(o, names, ("description", "shape_and_color"))]
    for record in direct:
        if color:
            _set_color(record, names, color)
        else:
            _append_detail(record, f"{target} now {op.new_value}")
    if direct:
        return f"made {target} {shown}"

    parts = RELATED_PARTS.get(target, ())
    related = [o for o in prompt.objects if parts and _mentions(o, list(parts), ("description",))]
    if related:
        _append_detail(related[0], f"{shown} {target}")
        return f"made {target} {shown}"

    record = _generic_record(f"{shown} {target}", None)
    template = OBJECT_TEMPLATES.get(target)
    if template:
        record.update({k: v.format(object=f"{shown} {target}") for k, v in template.items()})
    record["shape_and_color"] = shown
    prompt.objects.append(record)
    return f"added {shown} {target}"


def _apply_removal(prompt: StructuredPrompt, op: ObjectRemoval) -> str | None:
    names = _names(op.removed)
    kept = [o for o in prompt.objects if not _mentions(o, names, ("description",))]
    if len(kept) == len(prompt.objects):
        logger.info("Nothing matching %r to remove", op.removed)
        return None
    prompt.objects = kept
    return f"removed {canonical_target(op.removed)}"


@dataclass
class MutationResult:
    prompt: StructuredPrompt
    changes: list[str] = field(default_factory=list)


def mutate(
    prompt: StructuredPrompt, operations: list[BaseOperation], state: BackgroundState
) -> MutationResult:
    """Apply ``operations`` in order to a copy of ``prompt``."""
    out = prompt.model_copy(deep=True)
    out.background = state.description
    changes: list[str] = []

    for op in operations:
        if not op.is_valid:
            continue
        change: str | None
        if isinstance(op, BackgroundEdit):
            out.background = DEFAULT_BACKGROUND if op.is_removal else describe_background(op.target_description)
            change = describe(op) if op.is_removal else f"background: {out.background}"
        elif isinstance(op, ObjectAddition):
            out.objects.append(object_record(op))
            change = describe(op)
        elif isinstance(op, ObjectModification):
            change = _apply_modification(out, op)
        elif isinstance(op, ObjectRemoval):
            change = _apply_removal(out, op)
        elif isinstance(op, GeneralEdit):
            change = op.note if op.subject == "image" else describe(op)
        else:
            change = None
        if change:
            changes.append(change)

    out.short_description = _summarize(out.short_description, changes, out.background)
    return MutationResult(prompt=out, changes=changes)


def apply(prompt: StructuredPrompt, operations: list[BaseOperation], state: BackgroundState) -> StructuredPrompt:
    return mutate(prompt, operations, state).prompt


def _summarize(description: str, changes: list[str], background: str) -> str:
    present = description.lower()
    fresh = [
        c
        for c in changes
        if c.lower() not in present and not (c.startswith("background:") and background.lower() in present)
    ]
    if not fresh:
        return description
    summary = "; ".join(fresh)
    base = description.rstrip(". ")
    return f"{base}. Refined: {summary}" if base else f"Refined: {summary}"
