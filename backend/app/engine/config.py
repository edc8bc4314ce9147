"""Compiler configuration: conflict-resolution thresholds and weights."""

from __future__ import annotations

from dataclasses import dataclass, field

from app.engine.vocabulary import DEFAULT_BACKGROUND


@dataclass
class CompilerConfig:
    """Controls how competing operations are scored."""

    # An operation wins on specificity only above both thresholds
    specificity_threshold: float = 0.8
    confidence_threshold: float = 0.7

    # Base specificity per operation type
    type_weights: dict[str, float] = field(
        default_factory=lambda: {
            "background_edit": 0.7,
            "object_removal": 0.7,
            "object_modification": 0.6,
            "object_addition": 0.5,
            "general_edit": 0.2,
        }
    )
    target_bonus: float = 0.2  # explicit, non-pronoun target
    value_bonus: float = 0.2  # value adds information beyond the target
    location_bonus: float = 0.1
    recovered_penalty: float = 0.3  # operation came from a lossy fallback

    # Confidence assigned per origin when a rule does not set one
    template_confidence: float = 0.9
    list_confidence: float = 0.95
    inherited_confidence: float = 0.85
    recovered_confidence: float = 0.5

    default_background: str = DEFAULT_BACKGROUND
