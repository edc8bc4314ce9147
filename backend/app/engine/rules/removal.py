"""RM.* rules: object removals. "remove background" never gets here (BG.01)."""

from __future__ import annotations

import re

from app.engine.registry import Family, Fields, rule
from app.engine.rules.common import clean
from app.engine.vocabulary import extract_object_key


def _remove(phrase: str) -> Fields | None:
    obj = clean(phrase)
    if not obj:
        return None
    return {"target": extract_object_key(obj)}


@rule(
    id="RM.01",
    family=Family.REMOVAL,
    category="removal",
    pattern=r"^remove\s+(?:all\s+)?(?:the\s+|his\s+|her\s+|its\s+|their\s+)?(.+?)(?:\s+from\s+.+)?$",
)
def remove_x(m: re.Match[str]) -> Fields | None:
    """remove the hat (from his head)"""
    return _remove(m.group(1))


@rule(
    id="RM.02",
    family=Family.REMOVAL,
    category="removal",
    pattern=r"^(?:no|without)\s+(?:more\s+)?(?:the\s+|a\s+|an\s+)?(.+)$",
)
def no_x(m: re.Match[str]) -> Fields | None:
    """no hat / without the cigar"""
    return _remove(m.group(1))
