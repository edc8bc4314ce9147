"""VG.* rules: vague instructions. Only consulted when no other family matches.

These produce low-confidence GeneralEdit operations. VG.99 is the last
resort: any text that still contains an action verb.
"""

from __future__ import annotations

import re

from app.engine.registry import Family, Fields, rule
from app.engine.rules.common import VERB

OVERALL = "overall appearance"


@rule(
    id="VG.01",
    family=Family.FALLBACK,
    category="general",
    pattern=r"^(?:make\s+it\s+|change\s+it\s+|make\s+)?(?:better|cooler|nicer|prettier|more\s+interesting|different)$",
    confidence=0.6,
)
def make_it_better(m: re.Match[str]) -> Fields | None:
    """make it better / make different"""
    return {"target": OVERALL, "note": "enhanced"}


@rule(
    id="VG.02",
    family=Family.FALLBACK,
    category="general",
    pattern=r"^(?:improve|enhance|upgrade|polish)(?:\s+(?:it|this|the\s+image|the\s+design))?$",
    confidence=0.6,
)
def improve_it(m: re.Match[str]) -> Fields | None:
    """improve it"""
    return {"target": OVERALL, "note": "enhanced"}


@rule(
    id="VG.03",
    family=Family.FALLBACK,
    category="general",
    pattern=r"^(?:add\s+)?something\s+(cool|nice|interesting|good|better|fun)$",
    confidence=0.6,
)
def add_something_cool(m: re.Match[str]) -> Fields | None:
    """add something cool"""
    return {"target": OVERALL, "note": f"add something {m.group(1)}"}


@rule(
    id="VG.04",
    family=Family.FALLBACK,
    category="general",
    pattern=r"^change\s+(?:something|it|this|stuff)$",
    confidence=0.6,
)
def change_something(m: re.Match[str]) -> Fields | None:
    """change something"""
    return {"target": OVERALL, "note": "varied"}


@rule(
    id="VG.05",
    family=Family.FALLBACK,
    category="general",
    pattern=r"^(?:make\s+(?:it|everything)\s+)?more\s+(\w+)$",
    confidence=0.6,
)
def more_x(m: re.Match[str]) -> Fields | None:
    """more colorful"""
    return {"target": OVERALL, "note": f"more {m.group(1)}"}


@rule(
    id="VG.99",
    family=Family.FALLBACK,
    category="general",
    pattern=rf"^(?=.{{4,}}).*\b{VERB}\b.*$",
    confidence=0.5,
)
def any_action(m: re.Match[str]) -> Fields | None:
    """anything else with a recognizable action verb"""
    return {"target": "image", "note": m.group(0)}
