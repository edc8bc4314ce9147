"""BG.* rules: background edits.

Evaluated before every other family. Background phrasing is the most specific
and would otherwise be absorbed by the permissive addition rules
("forest background" is not an object to add).
"""

from __future__ import annotations

import re

from app.engine.registry import Family, Fields, rule
from app.engine.rules.common import ARTICLE, PRONOUN, VERB, clean, starts_with_verb
from app.engine.vocabulary import BACKGROUND_REMOVAL_VALUES, ENVIRONMENTS, alternation

ENV = alternation(ENVIRONMENTS)


def _edit(description: str) -> Fields | None:
    desc = clean(description)
    if not desc:
        return None
    if desc in BACKGROUND_REMOVAL_VALUES or desc == "transparent background":
        return {"description": "", "removal": True}
    return {"description": desc, "removal": False}


def _removal() -> Fields:
    return {"description": "", "removal": True}


@rule(
    id="BG.01",
    family=Family.BACKGROUND,
    category="background",
    pattern=r"^(?:remove|clear|drop|lose)\s+(?:the\s+)?background(?:\s+completely|\s+entirely)?$",
)
def remove_background(m: re.Match[str]) -> Fields | None:
    """remove/delete/clear background"""
    return _removal()


@rule(
    id="BG.02",
    family=Family.BACKGROUND,
    category="background",
    pattern=r"^(?:no|without(?:\s+a|\s+the)?)\s+background$|^(?:make\s+(?:it|the\s+background)\s+)?transparent(?:\s+background)?$",
)
def no_background(m: re.Match[str]) -> Fields | None:
    """no background / transparent background"""
    return _removal()


@rule(
    id="BG.03",
    family=Family.BACKGROUND,
    category="background",
    pattern=r"^(?:make|change|set|give|switch|update|turn)\s+(?:the\s+)?background\s+(?:to\s+|into\s+|as\s+|with\s+)?(.+)$",
)
def background_to_x(m: re.Match[str]) -> Fields | None:
    """make/change/set background (to) X"""
    return _edit(m.group(1))


@rule(
    id="BG.04",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^(?:add|put|use|give(?:\s+{PRONOUN})?)\s+{ARTICLE}?(.+?)\s+background$",
)
def add_x_background(m: re.Match[str]) -> Fields | None:
    """add/put X background"""
    return _edit(m.group(1))


@rule(
    id="BG.05",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^(.+?)\s+(?:falling\s+)?behind\s+{PRONOUN}$",
)
def x_behind_pronoun(m: re.Match[str]) -> Fields | None:
    """X behind him/her/it"""
    phrase = m.group(1)
    # "put a forest behind him"
    phrase = re.sub(rf"^{VERB}\s+", "", phrase)
    return _edit(phrase)


@rule(
    id="BG.06",
    family=Family.BACKGROUND,
    category="background",
    pattern=r"^background\s+(?:of\s+|with\s+|to\s+|:\s*)?(.+)$",
)
def background_of_x(m: re.Match[str]) -> Fields | None:
    """background of X"""
    return _edit(m.group(1))


@rule(
    id="BG.07",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^{ARTICLE}?({ENV})\s+(?:behind|backdrop)$",
)
def environment_behind(m: re.Match[str]) -> Fields | None:
    """forest behind / snowfall behind"""
    return _edit(m.group(1))


@rule(
    id="BG.08",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^{ARTICLE}?({ENV})\s+(?:scene|setting|environment)$",
)
def environment_scene(m: re.Match[str]) -> Fields | None:
    """forest scene / city setting"""
    return _edit(m.group(1))


@rule(
    id="BG.09",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^(?:put|place|set)\s+(?:{PRONOUN}\s+)?(?:in|into|on|at)\s+{ARTICLE}?({ENV})$",
)
def put_in_environment(m: re.Match[str]) -> Fields | None:
    """put (him) in a city"""
    return _edit(m.group(1))


@rule(
    id="BG.10",
    family=Family.BACKGROUND,
    category="background",
    pattern=r"^(?:different|new|another|change(?:\s+the)?)\s+background$",
)
def different_background(m: re.Match[str]) -> Fields | None:
    """different/new background"""
    return {"description": "different background setting", "removal": False}


@rule(
    id="BG.11",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^{ARTICLE}?(.+?)\s+background$",
)
def x_background(m: re.Match[str]) -> Fields | None:
    """forest background / snowy mountain background"""
    phrase = m.group(1)
    if starts_with_verb(phrase):
        return None
    return _edit(phrase)


@rule(
    id="BG.12",
    family=Family.BACKGROUND,
    category="background",
    pattern=rf"^({ENV})$",
)
def bare_environment(m: re.Match[str]) -> Fields | None:
    """single environment word"""
    return _edit(m.group(1))
