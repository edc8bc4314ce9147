"""Conflict resolver: at most one operation per normalized target.

Operations are grouped by canonical target ("glasses" and "sunglasses" are
the same thing). Within a group the survivor is chosen by, in order:

1. removal always wins
2. on a background target, the latest background edit wins
3. the most specific operation, if it clears both thresholds
4. the single highest confidence
5. the latest operation

Every loser gets a ConflictOverride record naming its survivor and the rule.
Groups are resolved in ``priority`` order (lowest first, background edits
before object edits), which is the order of the override records.
Survivors keep their original order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.engine.config import CompilerConfig
from app.engine.vocabulary import MAIN_SUBJECT, canonical_target
from app.models.operations import BackgroundEdit, BaseOperation, ObjectAddition, ObjectRemoval

logger = logging.getLogger(__name__)

_VAGUE_TARGETS = {MAIN_SUBJECT, "everything", "image", "overall appearance", ""}


@dataclass
class ConflictOverride:
    """Informational record: ``discarded`` lost to ``survivor`` by ``rule``."""

    target: str
    discarded: BaseOperation
    survivor: BaseOperation
    rule: str

    def as_dict(self) -> dict[str, str]:
        return {
            "target": self.target,
            "discarded": self.discarded.source_text,
            "survivor": self.survivor.source_text,
            "rule": self.rule,
        }


@dataclass
class ConflictResolution:
    operations: list[BaseOperation]
    overrides: list[ConflictOverride] = field(default_factory=list)


def conflict_key(op: BaseOperation) -> str:
    return canonical_target(op.target)


def specificity(op: BaseOperation, config: CompilerConfig | None = None) -> float:
    """Heuristic in [0, 1]: type weight plus bonuses for explicit detail."""
    config = config or CompilerConfig()
    score = config.type_weights.get(op.type, 0.2)  # type: ignore[attr-defined]

    if op.target not in _VAGUE_TARGETS:
        score += config.target_bonus
    value = op.value
    if isinstance(op, ObjectAddition):
        # An addition's value is its phrase; it only says more when it
        # differs from the bare key ("red hat" vs "hat").
        if value and value != op.key:
            score += config.value_bonus
        if op.location:
            score += config.location_bonus
    elif value:
        score += config.value_bonus
    if op.origin == "recovered":
        score -= config.recovered_penalty
    return round(max(0.0, min(1.0, score)), 3)


def _pick(
    group: list[tuple[int, BaseOperation]], target: str, config: CompilerConfig
) -> tuple[int, str]:
    """Index (into ``group``) of the survivor and the rule that chose it."""
    removals = [i for i, (_, op) in enumerate(group) if isinstance(op, ObjectRemoval)]
    if removals:
        return removals[-1], "removal_wins"

    if "background" in target:
        backgrounds = [i for i, (_, op) in enumerate(group) if isinstance(op, BackgroundEdit)]
        if backgrounds:
            return backgrounds[-1], "background_wins"

    scored = [(specificity(op, config), i) for i, (_, op) in enumerate(group)]
    qualified = [
        (score, i)
        for score, i in scored
        if score > config.specificity_threshold and group[i][1].confidence > config.confidence_threshold
    ]
    if qualified:
        best = max(score for score, _ in qualified)
        return max(i for score, i in qualified if score == best), "specificity"

    top = max(op.confidence for _, op in group)
    leaders = [i for i, (_, op) in enumerate(group) if op.confidence == top]
    if len(leaders) == 1:
        return leaders[0], "confidence"

    return len(group) - 1, "latest"


def resolve(operations: list[BaseOperation], config: CompilerConfig | None = None) -> ConflictResolution:
    """Pick one survivor per target. Invalid operations pass through untouched."""
    config = config or CompilerConfig()
    groups: dict[str, list[tuple[int, BaseOperation]]] = {}
    for pos, op in enumerate(operations):
        if op.is_valid:
            groups.setdefault(conflict_key(op), []).append((pos, op))

    dropped: set[int] = set()
    overrides: list[ConflictOverride] = []
    ranked = sorted(groups.items(), key=lambda item: min(op.priority for _, op in item[1]))
    for target, group in ranked:
        if len(group) < 2:
            continue
        winner, rule_name = _pick(group, target, config)
        survivor = group[winner][1]
        for i, (pos, op) in enumerate(group):
            if i == winner:
                continue
            dropped.add(pos)
            override = ConflictOverride(target=target, discarded=op, survivor=survivor, rule=rule_name)
            overrides.append(override)
            logger.info(
                "Conflict on %r: %r overridden by %r (%s)",
                target,
                op.source_text,
                survivor.source_text,
                rule_name,
            )

    kept = [op for pos, op in enumerate(operations) if pos not in dropped]
    return ConflictResolution(operations=kept, overrides=overrides)
