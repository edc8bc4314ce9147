"""MD.* rules: object modifications (color changes and other attribute edits).

Order within the family matters: the narrow phrasings ("make it more red")
must run before the permissive "make X Y" catch-all.
"""

from __future__ import annotations

import re

from app.engine.registry import Family, Fields, rule
from app.engine.rules.common import ARTICLE, PRONOUN, POSSESSIVE, clean, starts_with_verb, subject
from app.engine.vocabulary import MAIN_SUBJECT, VAGUE_VALUES, normalize_color


def _modify(target: str, value: str) -> Fields | None:
    t = subject(target)
    v = clean(value)
    if not t or not v or v in VAGUE_VALUES:
        return None
    return {"target": t, "value": v}


def _recolor(target: str, value: str) -> Fields | None:
    """Like _modify but only when ``value`` names a color."""
    if normalize_color(value) is None:
        return None
    return _modify(target, value)


@rule(
    id="MD.01",
    family=Family.MODIFICATION,
    category="modification",
    pattern=r"^change\s+(?:the\s+)?color\s+of\s+(?:the\s+)?(.+?)\s+to\s+(?:a\s+)?(\w+)$",
)
def change_color_of_x_to_y(m: re.Match[str]) -> Fields | None:
    """change the color of X to Y"""
    return _modify(m.group(1), m.group(2))


@rule(
    id="MD.02",
    family=Family.MODIFICATION,
    category="modification",
    pattern=r"^change\s+(?:the\s+)?color\s+to\s+(\w+)$",
)
def change_color_to_y(m: re.Match[str]) -> Fields | None:
    """change the color to Y (implicit main subject)"""
    return _modify(MAIN_SUBJECT, m.group(1))


@rule(
    id="MD.03",
    family=Family.MODIFICATION,
    category="modification",
    pattern=r"^change\s+(?:the\s+)?(.+?)\s+color\s+to\s+(\w+)$",
)
def change_x_color_to_y(m: re.Match[str]) -> Fields | None:
    """change X color to Y"""
    return _modify(m.group(1), m.group(2))


@rule(
    id="MD.04",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^put\s+(?:some\s+)?(\w+)\s+on\s+{PRONOUN}$",
)
def put_color_on_it(m: re.Match[str]) -> Fields | None:
    """put some red on it"""
    return _recolor(MAIN_SUBJECT, m.group(1))


@rule(
    id="MD.05",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^make\s+({PRONOUN}|everything)\s+more\s+(\w+)$",
)
def make_it_more_color(m: re.Match[str]) -> Fields | None:
    """make it more red"""
    return _recolor(m.group(1), m.group(2))


@rule(
    id="MD.06",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^add\s+(?:some\s+)?(\w+)\s+to\s+{POSSESSIVE}?(.+)$",
)
def add_color_to_x(m: re.Match[str]) -> Fields | None:
    """add red to it / add gold to the teeth"""
    return _recolor(m.group(2), m.group(1))


@rule(
    id="MD.07",
    family=Family.MODIFICATION,
    category="modification",
    pattern=r"^(?:make|turn)\s+everything\s+(\w+)$",
)
def make_everything_y(m: re.Match[str]) -> Fields | None:
    """make everything blue"""
    return _modify("everything", m.group(1))


@rule(
    id="MD.08",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^(?:turn|transform|change)\s+{POSSESSIVE}?(.+?)\s+into\s+{ARTICLE}?(.+)$",
)
def turn_x_into_y(m: re.Match[str]) -> Fields | None:
    """turn him into a zombie"""
    return _modify(m.group(1), m.group(2))


@rule(
    id="MD.09",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^(?:turn|make\s+{PRONOUN})\s+(\w+)$",
)
def turn_y(m: re.Match[str]) -> Fields | None:
    """turn blue / make it blue"""
    return _modify(MAIN_SUBJECT, m.group(1))


@rule(
    id="MD.10",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^(?:color|paint|dye)\s+{POSSESSIVE}?(.+?)\s+(\w+)$",
)
def paint_x_y(m: re.Match[str]) -> Fields | None:
    """paint the hat red"""
    return _recolor(m.group(1), m.group(2))


@rule(
    id="MD.11",
    family=Family.MODIFICATION,
    category="modification",
    pattern=r"^(?:color\s+(\w+)|(\w+)\s+color)$",
)
def bare_color(m: re.Match[str]) -> Fields | None:
    """color blue / blue color"""
    return _recolor(MAIN_SUBJECT, m.group(1) or m.group(2))


@rule(
    id="MD.12",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^give\s+{PRONOUN}\s+(\w+)\s+(.+)$",
)
def give_color_part(m: re.Match[str]) -> Fields | None:
    """give him red eyes"""
    return _recolor(m.group(2), m.group(1))


@rule(
    id="MD.13",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^(?:replace|swap)\s+{POSSESSIVE}?(.+?)\s+(?:with|for)\s+{ARTICLE}?(.+)$",
)
def replace_x_with_y(m: re.Match[str]) -> Fields | None:
    """replace the hat with a crown"""
    return _modify(m.group(1), m.group(2))


@rule(
    id="MD.14",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^change\s+{POSSESSIVE}?(.+?)\s+to\s+{ARTICLE}?(.+)$",
)
def change_x_to_y(m: re.Match[str]) -> Fields | None:
    """change the hat to red"""
    return _modify(m.group(1), m.group(2))


@rule(
    id="MD.15",
    family=Family.MODIFICATION,
    category="modification",
    pattern=rf"^(?:make|turn)\s+{POSSESSIVE}?(.+?)\s+(\w+)$",
)
def make_x_y(m: re.Match[str]) -> Fields | None:
    """make the teeth golden (catch-all)"""
    target = m.group(1)
    if " more" in f" {target}" or starts_with_verb(target):
        return None
    return _modify(target, m.group(2))
