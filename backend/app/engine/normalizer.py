"""Synonym normalizer: many phrasings of one intent -> one canonical form.

Two instructions are equivalent iff they normalize to the same
``(category, normalized_form)`` pair. The classifier builds operations from
the normalizer's extracted fields only, so equivalent instructions always
classify to the same (type, target, value).
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Any

from app.engine import rules  # noqa: F401  (registers all rules)
from app.engine.registry import Family, RuleHit, get_registry
from app.engine.vocabulary import extract_object_key, normalize_color

# Families the normalizer consults. Vague fallbacks stay "unknown" here.
NORMALIZING_FAMILIES = {Family.BACKGROUND, Family.MODIFICATION, Family.ADDITION, Family.REMOVAL}

_POLITENESS = re.compile(
    r"^(?:please|pls|kindly|can\s+you|could\s+you|would\s+you|will\s+you|"
    r"i\s+want\s+(?:you\s+to|to)|i'?d\s+like\s+(?:you\s+to|to)|let'?s|now|just|also|and|then)[\s,]+"
)
_TRAILING_POLITENESS = re.compile(r"\s+(?:please|pls|thanks|thank\s+you)$")

_TYPOS = re.compile(
    r"\b(?:back\s+ground|backround|backgound|backgroud|backgrond|bakground|"
    r"backgorund|bckground|bacground|backgroung|bg)\b"
)

_SPELLING = {
    r"\bcolou?rs?\b": "color",
    r"\bgrey\b": "gray",
}

# Verb synonyms folded onto the verbs the rules know.
_VERB_SYNONYMS = (
    (re.compile(r"\b(?:get\s+rid\s+of|take\s+off|take\s+away|take\s+out)\b"), "remove"),
    (re.compile(r"\b(?:delete|erase|eliminate)\b"), "remove"),
    (re.compile(r"\b(?:alter|modify)\b"), "change"),
    (re.compile(r"\b(?:attach|insert)\b"), "add"),
    # "stick a hat on him", but not "hockey stick"
    (re.compile(r"\bstick(?=\s+(?:a|an|the|some)\b)"), "add"),
)


def canonicalize(text: str) -> str:
    """Surface cleanup that never changes meaning."""
    t = text.strip().lower()
    t = t.replace("’", "'").replace("‘", "'")
    t = re.sub(r"\s*&\s*|\s+\+\s+", " and ", t)
    t = re.sub(r"\s+", " ", t)
    t = re.sub(r"[.!?]+$", "", t).strip()

    prev = None
    while prev != t:
        prev = t
        t = _POLITENESS.sub("", t)
        t = _TRAILING_POLITENESS.sub("", t)

    t = _TYPOS.sub("background", t)
    for pattern, repl in _SPELLING.items():
        t = re.sub(pattern, repl, t)
    for pattern, repl in _VERB_SYNONYMS:
        t = pattern.sub(repl, t)
    return t.strip(" ,;")


@dataclass(frozen=True)
class NormalizedInstruction:
    text: str  # canonicalized input
    category: str  # addition|colorChange|background|modification|removal|unknown
    normalized_form: str
    fields: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    confidence: float = 0.0
    rule_id: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.category, self.normalized_form)


def _form(category: str, f: dict[str, Any]) -> str:
    if category == "background":
        return "background:<removed>" if f["removal"] else f"background:{f['description']}"
    if category in ("colorChange", "modification"):
        return f"{f['target']}->{f['value']}"
    if category == "addition":
        loc = f.get("location") or ""
        return f"add:{f['object']}@{loc}"
    if category == "removal":
        return f"remove:{f['target']}"
    raise ValueError(f"No normalized form for category {category!r}")


def _from_hit(text: str, hit: RuleHit) -> NormalizedInstruction:
    fields = dict(hit.fields)
    category = hit.spec.category
    if category == "modification" and normalize_color(fields["value"]) is not None:
        category = "colorChange"
    if category == "addition":
        fields["key"] = extract_object_key(fields["object"])
    return NormalizedInstruction(
        text=text,
        category=category,
        normalized_form=_form(category, fields),
        fields=fields,
        confidence=1.0,
        rule_id=hit.spec.id,
    )


@functools.lru_cache(maxsize=2048)
def normalize(text: str) -> NormalizedInstruction:
    """First matching rule across the normalizing families, or ``unknown``."""
    canon = canonicalize(text)
    hit = get_registry().match(canon, NORMALIZING_FAMILIES)
    if hit is None:
        return NormalizedInstruction(text=canon, category="unknown", normalized_form=canon)
    return _from_hit(canon, hit)


def are_equivalent(a: str, b: str) -> bool:
    return normalize(a).key == normalize(b).key
