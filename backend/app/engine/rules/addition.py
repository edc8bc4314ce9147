"""AD.* rules: object additions."""

from __future__ import annotations

import re

from app.engine.registry import Family, Fields, rule
from app.engine.rules.common import POSSESSIVE, PRONOUN, clean, starts_with_verb
from app.engine.vocabulary import KNOWN_OBJECTS, PRONOUN_TARGETS, alternation

OBJECT = alternation(KNOWN_OBJECTS)
_PLACEMENT = r"(?:to|on|onto|in|at|near|around|over|under|behind)"
# "add something cool" is a vague request, not an object
_VAGUE_OBJECTS = ("something", "anything", "stuff")


def _add(phrase: str, location: str | None = None) -> Fields | None:
    obj = clean(phrase)
    if not obj or starts_with_verb(obj) or obj.split()[0] in _VAGUE_OBJECTS:
        return None
    loc = clean(location) if location else None
    if loc in PRONOUN_TARGETS or loc == "":
        loc = None
    return {"object": obj, "location": loc}


@rule(
    id="AD.01",
    family=Family.ADDITION,
    category="addition",
    pattern=rf"^(?:add|place|put|include)\s+(.+?)(?:\s+{_PLACEMENT}\s+{POSSESSIVE}?([\w ]+?))?$",
)
def add_x(m: re.Match[str]) -> Fields | None:
    """add X (to/on Y)"""
    return _add(m.group(1), m.group(2))


@rule(
    id="AD.02",
    family=Family.ADDITION,
    category="addition",
    pattern=rf"^give\s+{PRONOUN}\s+(.+)$",
)
def give_x(m: re.Match[str]) -> Fields | None:
    """give him a hat"""
    return _add(m.group(1))


@rule(
    id="AD.03",
    family=Family.ADDITION,
    category="addition",
    pattern=rf"^(?:equip|outfit)\s+(?:{PRONOUN}\s+)?(?:with\s+)?(.+)$",
)
def equip_with_x(m: re.Match[str]) -> Fields | None:
    """equip with a sword"""
    return _add(m.group(1))


@rule(
    id="AD.04",
    family=Family.ADDITION,
    category="addition",
    pattern=r"^(?:with|wearing)\s+(.+)$",
    confidence=0.8,
)
def with_x(m: re.Match[str]) -> Fields | None:
    """with a hat / wearing sunglasses"""
    return _add(m.group(1))


@rule(
    id="AD.05",
    family=Family.ADDITION,
    category="addition",
    pattern=rf"^(?:a\s+|an\s+|some\s+)?((?:\w+\s+)?{OBJECT})$",
    confidence=0.6,
)
def bare_known_object(m: re.Match[str]) -> Fields | None:
    """a bare known object noun ("hat", "a red hat") implies adding it"""
    if m.group(1).split()[0] in ("no", "without"):
        return None
    return _add(m.group(1))
