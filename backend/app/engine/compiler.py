"""Instruction compiler: free text -> resolved, ordered operations.

    canonicalize -> templates / segment -> classify each -> resolve conflicts

Unparsed segments are collected on the result, never dropped and never
turned into a default edit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.engine.classifier import classify
from app.engine.config import CompilerConfig
from app.engine.conflicts import ConflictOverride, resolve
from app.engine.segmenter import Segment, Segmentation, SegmentationAmbiguity, split_instruction
from app.models.operations import BackgroundEdit, BaseOperation, UnparsedInstruction

logger = logging.getLogger(__name__)


@dataclass
class CompiledInstruction:
    instruction: str
    operations: list[BaseOperation]
    overrides: list[ConflictOverride] = field(default_factory=list)
    unparsed: list[UnparsedInstruction] = field(default_factory=list)
    warnings: list[SegmentationAmbiguity] = field(default_factory=list)
    strategy: str = "single"
    segmentation: Segmentation | None = None

    @property
    def is_parsed(self) -> bool:
        return bool(self.operations)

    @property
    def has_background_edit(self) -> bool:
        return any(isinstance(op, BackgroundEdit) for op in self.operations)

    @property
    def background_edit(self) -> BackgroundEdit | None:
        """Last background edit (the resolver leaves at most one)."""
        edits = [op for op in self.operations if isinstance(op, BackgroundEdit)]
        return edits[-1] if edits else None

    @property
    def edit_type(self) -> str:
        if not self.operations:
            return "unparsed"
        if len(self.operations) > 1:
            return "multi_step"
        op = self.operations[0]
        if isinstance(op, BackgroundEdit):
            return "background_removal" if op.is_removal else "background_replacement"
        return op.type  # type: ignore[attr-defined]


def _origin(seg: Segment, strategy: str) -> str:
    if strategy == "template":
        return "template"
    if seg.inherited:
        return "list" if strategy == "list" else "inherited"
    if strategy == "verb_span":
        return "recovered"
    return "pattern"


def _origin_confidence(origin: str, config: CompilerConfig) -> float:
    return {
        "template": config.template_confidence,
        "list": config.list_confidence,
        "inherited": config.inherited_confidence,
        "recovered": config.recovered_confidence,
    }.get(origin, 1.0)


def compile_instruction(text: str, config: CompilerConfig | None = None) -> CompiledInstruction:
    config = config or CompilerConfig()
    seg = split_instruction(text)

    operations: list[BaseOperation] = []
    unparsed: list[UnparsedInstruction] = []
    for order, segment in enumerate(seg.segments):
        op = classify(segment.instruction)
        if isinstance(op, UnparsedInstruction):
            unparsed.append(op.model_copy(update={"order": order}))
            continue
        origin = _origin(segment, seg.strategy)
        confidence = min(op.confidence, _origin_confidence(origin, config))
        operations.append(op.model_copy(update={"origin": origin, "order": order, "confidence": confidence}))

    resolution = resolve(operations, config)
    if seg.strategy == "template":
        strategy = "template"
    elif len(seg.segments) > 1:
        strategy = "multi_step"
    else:
        strategy = "single"

    result = CompiledInstruction(
        instruction=text,
        operations=resolution.operations,
        overrides=resolution.overrides,
        unparsed=unparsed,
        warnings=list(seg.warnings),
        strategy=strategy,
        segmentation=seg,
    )
    logger.info(
        "Compiled %r: %d operation(s), %d override(s), %d unparsed (%s)",
        text,
        len(result.operations),
        len(result.overrides),
        len(result.unparsed),
        strategy,
    )
    return result
