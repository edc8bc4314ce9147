"""Rule registry: every phrasing is a standalone function registered via decorator.

Usage:
    @rule(id="BG.02", family=Family.BACKGROUND, category="background",
          pattern=r"^(?:make|change|set) (?:the )?background (?:to )?(.+)$")
    def background_to_x(m: re.Match[str]) -> dict | None:
        return {"description": m.group(1), "removal": False}

A rule returns the extracted fields, or None to decline the match so the
dispatch loop keeps looking. Adding a phrasing = adding one decorated function.
Nothing else changes.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

Fields = dict[str, Any]


class Family(enum.IntEnum):
    """Pattern families in strict evaluation order."""

    BACKGROUND = 1
    MODIFICATION = 2
    ADDITION = 3
    REMOVAL = 4
    FALLBACK = 5


CATEGORIES = ("addition", "colorChange", "background", "modification", "removal", "general")


@dataclass
class RuleSpec:
    id: str
    family: Family
    category: str
    pattern: re.Pattern[str]
    fn: Callable[[re.Match[str]], Fields | None]
    confidence: float = 1.0
    description: str = ""

    def apply(self, text: str) -> Fields | None:
        m = self.pattern.search(text)
        if m is None:
            return None
        return self.fn(m)


@dataclass
class RuleHit:
    spec: RuleSpec
    fields: Fields = field(default_factory=dict)


class RuleRegistry:
    """Singleton registry of all phrasing rules."""

    def __init__(self) -> None:
        self._rules: dict[str, RuleSpec] = {}

    def register(self, spec: RuleSpec) -> None:
        if spec.id in self._rules:
            raise ValueError(f"Duplicate rule ID: {spec.id}")
        if spec.category not in CATEGORIES:
            raise ValueError(f"Unknown category {spec.category!r} for rule {spec.id}")
        self._rules[spec.id] = spec
        logger.debug("Registered rule %s (%s)", spec.id, spec.family.name)

    def get(self, rule_id: str) -> RuleSpec:
        return self._rules[rule_id]

    def get_family(self, family: Family) -> list[RuleSpec]:
        specs = [s for s in self._rules.values() if s.family == family]
        return sorted(specs, key=lambda s: s.id)

    def all(self) -> list[RuleSpec]:
        return sorted(self._rules.values(), key=lambda s: (s.family, s.id))

    def match(self, text: str, families: set[Family] | None = None) -> RuleHit | None:
        """First rule (in family, id order) that matches and does not decline."""
        for spec in self.all():
            if families is not None and spec.family not in families:
                continue
            fields = spec.apply(text)
            if fields is not None:
                return RuleHit(spec=spec, fields=fields)
        return None

    @property
    def count(self) -> int:
        return len(self._rules)


# Module-level singleton
_registry = RuleRegistry()


def get_registry() -> RuleRegistry:
    return _registry


def rule(
    *,
    id: str,
    family: Family,
    category: str,
    pattern: str,
    confidence: float = 1.0,
    description: str = "",
):
    """Decorator to register a phrasing rule."""

    def decorator(fn: Callable[[re.Match[str]], Fields | None]):
        spec = RuleSpec(
            id=id,
            family=family,
            category=category,
            pattern=re.compile(pattern, re.IGNORECASE),
            fn=fn,
            confidence=confidence,
            description=description or (fn.__doc__ or "").strip(),
        )
        _registry.register(spec)
        return fn

    return decorator
