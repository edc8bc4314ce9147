"""Refinement instruction compiler engine."""

from app.engine.registry import Family, get_registry, rule

__all__ = [
    "rule",
    "Family",
    "get_registry",
]
