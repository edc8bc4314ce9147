"""Helpers shared by the rule modules."""

from __future__ import annotations

from app.engine.vocabulary import (
    ACTION_VERBS,
    MAIN_SUBJECT,
    PRONOUN_TARGETS,
    alternation,
    strip_articles,
)

VERB = alternation(ACTION_VERBS)
PRONOUN = r"(?:him|her|it|them|this)"
ARTICLE = r"(?:a\s+|an\s+|the\s+|some\s+)"
POSSESSIVE = r"(?:the\s+|his\s+|her\s+|its\s+|their\s+)"


def clean(phrase: str | None) -> str:
    if not phrase:
        return ""
    return strip_articles(" ".join(phrase.split()))


def subject(phrase: str) -> str:
    """Map pronoun targets onto the main subject."""
    p = " ".join(phrase.lower().split())
    if p in PRONOUN_TARGETS:
        return MAIN_SUBJECT
    p = clean(p)
    if p in PRONOUN_TARGETS:
        return MAIN_SUBJECT
    return p


def starts_with_verb(phrase: str) -> bool:
    first = phrase.split(maxsplit=1)[0] if phrase.strip() else ""
    return first in ACTION_VERBS
