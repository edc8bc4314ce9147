"""Instruction segmenter: one compound instruction -> ordered sub-instructions.

Mixed templates are tried first. Otherwise four splitting strategies run and
the one yielding the most non-trivial parts wins (ties go to the earlier
strategy). Compound phrases such as "sausage and peppers" are protected from
conjunction splitting throughout.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from app.engine.normalizer import canonicalize, normalize
from app.engine.rules.common import VERB
from app.engine.templates import match_template
from app.engine.vocabulary import ACTION_VERBS, ARTICLES, COMPOUND_PHRASES, alternation

logger = logging.getLogger(__name__)

# Verbs that open a new clause. "color" and "set" are excluded: they show up
# mid-phrase ("make the hat color red") far more often than as clause openers.
CLAUSE_VERBS = tuple(v for v in ACTION_VERBS if v not in ("color", "set", "improve", "enhance"))
_CLAUSE_VERB = alternation(CLAUSE_VERBS)

# Verbs whose object may be a list of several things to add.
ADDITION_VERBS = ("add", "put", "place", "give")

_PROTECT = "\x00"
_TRIVIAL = {"", "and", "then", "also", "plus", "it", "too"}

_MULTI_EDIT = (
    re.compile(rf"\b(?:and|plus|also|then)\s+{VERB}\b"),
    re.compile(rf"[,;]\s*(?:and\s+)?{VERB}\b"),
    re.compile(r"[,;]"),
    re.compile(r"\s(?:and|plus)\s"),
)

_CONJUNCTION_SPLIT = re.compile(
    r"\s*[,;]\s*(?:(?:and|then|also|plus)\s+)*|\s+(?:and|plus|also|then)\s+(?:(?:then|also)\s+)?"
)
_COMMA_BEFORE_VERB = re.compile(rf"\s*[,;]\s*(?:(?:and|then)\s+)?(?={_CLAUSE_VERB}\b)")
_LIST_SPLIT = re.compile(r"\s*,\s*(?:and\s+)?|\s+(?:and|plus)\s+")
_LEADING_VERB = re.compile(rf"^({_CLAUSE_VERB})\s+(.+)$")
_CLAUSE_START = re.compile(rf"(?:^|(?<=[\s,;])){_CLAUSE_VERB}\b")
_DANGLING = re.compile(r"^(?:(?:and|then|also|plus)\s+)+|(?:\s+(?:and|then|also|plus))+$")
_ANY_VERB = re.compile(rf"\b{VERB}\b")


@dataclass
class Segment:
    """A sub-instruction. ``text`` is the fragment as written; ``instruction``
    is what gets classified (the fragment with any inherited verb applied)."""

    text: str
    action: str | None = None
    inherited: bool = False

    @property
    def instruction(self) -> str:
        if self.inherited and self.action:
            return f"{self.action} {self.text}"
        return self.text


@dataclass
class SegmentationAmbiguity:
    text: str
    predicted: int
    recovered: int

    @property
    def message(self) -> str:
        return (
            f"Expected about {self.predicted} edits in {self.text!r} "
            f"but could only separate {self.recovered}"
        )


@dataclass
class Segmentation:
    text: str
    segments: list[Segment]
    strategy: str
    predicted_count: int = 1
    template_id: str | None = None
    warnings: list[SegmentationAmbiguity] = field(default_factory=list)

    @property
    def texts(self) -> list[str]:
        return [s.text for s in self.segments]

    @property
    def instructions(self) -> list[str]:
        return [s.instruction for s in self.segments]


# -- Compound phrase protection --------------------------------------------------


def _protect(text: str) -> str:
    for phrase in COMPOUND_PHRASES:
        text = re.sub(rf"\b{re.escape(phrase)}\b", phrase.replace(" ", _PROTECT), text)
    return text


def _restore(text: str) -> str:
    return text.replace(_PROTECT, " ")


# -- Strategies ------------------------------------------------------------------


def _tidy(parts: list[str]) -> list[str]:
    out = []
    for p in parts:
        p = _DANGLING.sub("", p.strip(" ,;")).strip()
        if p not in _TRIVIAL:
            out.append(p)
    return out


def _shared_verb_list(text: str) -> tuple[list[str], str | None]:
    """'add a hat, cigar and a snake' -> ['a hat', 'cigar', 'a snake'] sharing 'add'."""
    m = _LEADING_VERB.match(text)
    if not m:
        return [], None
    verb, rest = m.group(1), m.group(2)
    if _ANY_VERB.search(rest):
        return [], None
    return _tidy(_LIST_SPLIT.split(rest)), verb


def _conjunctions(text: str) -> list[str]:
    return _tidy(_CONJUNCTION_SPLIT.split(text))


def _commas_before_verbs(text: str) -> list[str]:
    return _tidy(_COMMA_BEFORE_VERB.split(text))


def _verb_spans(text: str) -> list[str]:
    starts = [m.start() for m in _CLAUSE_START.finditer(text)]
    if not starts or starts[0] != 0:
        starts = [0, *starts]
    bounds = [*starts, len(text)]
    return _tidy([text[a:b] for a, b in zip(bounds, bounds[1:])])


# -- Public API ------------------------------------------------------------------


def predict_count(text: str) -> int:
    """Rough number of edits: action verbs not used as nouns ("the color of"),
    plus the extra items of any "add X, Y and Z" list."""
    protected = _protect(canonicalize(text))
    count = 0
    for m in _ANY_VERB.finditer(protected):
        before = protected[: m.start()].split()
        after = protected[m.end() :].split()
        if before and before[-1] in ARTICLES:
            continue
        if after and after[0] in ("of", "to"):
            continue
        count += 1
    for clause in _verb_spans(protected):
        items, verb = _shared_verb_list(clause)
        if verb in ADDITION_VERBS and len(items) > 1:
            count += len(items) - 1
    return max(1, count)


def has_multiple_edits(text: str) -> bool:
    protected = _protect(canonicalize(text))
    return any(p.search(protected) for p in _MULTI_EDIT) or predict_count(text) >= 2


def _inherit(parts: list[str], shared_verb: str | None) -> list[Segment]:
    """Verb-less parts take the nearest preceding verb, unless they read as a background."""
    segments = []
    last_verb = shared_verb
    for part in parts:
        m = _LEADING_VERB.match(part)
        if m:
            last_verb = m.group(1)
            segments.append(Segment(text=part, action=last_verb))
            continue
        if last_verb and normalize(part).category != "background":
            segments.append(Segment(text=part, action=last_verb, inherited=True))
        else:
            segments.append(Segment(text=part))
    return segments


def _expand_list(part: str) -> list[Segment]:
    """A template part such as "add a hat and a cigar" -> one segment per item."""
    items, verb = _shared_verb_list(_protect(part))
    if verb in ADDITION_VERBS and len(items) > 1:
        return _inherit([_restore(i) for i in items], verb)
    return [Segment(text=part, action=part.split(maxsplit=1)[0])]


def _warn_if_short(seg: Segmentation) -> None:
    if len(seg.segments) < seg.predicted_count:
        warning = SegmentationAmbiguity(seg.text, seg.predicted_count, len(seg.segments))
        logger.warning(warning.message)
        seg.warnings.append(warning)


def split_instruction(text: str) -> Segmentation:
    canon = canonicalize(text)
    predicted = predict_count(canon)

    found = match_template(canon)
    if found is not None:
        template, parts = found
        segments = [s for p in parts for s in _expand_list(p)]
        seg = Segmentation(canon, segments, "template", predicted, template.id)
        _warn_if_short(seg)
        return seg

    if not has_multiple_edits(canon):
        return Segmentation(canon, _inherit([canon], None), "single", predicted)

    protected = _protect(canon)
    list_parts, shared_verb = _shared_verb_list(protected)
    candidates: list[tuple[str, list[str], str | None]] = [
        ("list", list_parts, shared_verb),
        ("conjunction", _conjunctions(protected), None),
        ("comma_verb", _commas_before_verbs(protected), None),
        ("verb_span", _verb_spans(protected), None),
    ]
    # max() keeps the first of equal counts, so earlier strategies win ties.
    strategy, parts, verb = max(candidates, key=lambda c: len(c[1]))
    parts = [_restore(p) for p in parts] or [canon]
    if len(parts) < 2:
        strategy = "single"

    seg = Segmentation(canon, _inherit(parts, verb), strategy, predicted)
    _warn_if_short(seg)
    logger.debug("Segmented %r via %s -> %s", canon, strategy, seg.instructions)
    return seg


def segment(text: str) -> list[str]:
    """Ordered sub-instruction fragments of ``text``."""
    return split_instruction(text).texts
