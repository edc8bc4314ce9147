"""Refinement service: one instruction + one image URL -> one refined image.

Generation strategies, in fallback order:

1. structured: mutate the cached scene descriptor and regenerate from it
2. mask: per-operation edits on the image itself (background removal or
   replacement, mask + gen-fill); one operation failing degrades only that
   operation
3. text: plain-text prompt augmentation

A failure is surfaced only when every strategy fails. Chain state is updated
only after a refined image exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.engine.background import BackgroundContextManager, describe_background
from app.engine.compiler import CompiledInstruction, compile_instruction
from app.engine.config import CompilerConfig
from app.engine.conflicts import ConflictOverride
from app.engine.mutator import mutate
from app.errors import NO_RECOGNIZABLE_ACTION, ExternalServiceFailure, ParseFailure
from app.generation.cache import GenerationCache
from app.generation.client import GenerationClient, PollResult
from app.models.chain import DEFAULT_BACKGROUND, BackgroundState
from app.models.operations import (
    BackgroundEdit,
    BaseOperation,
    ObjectAddition,
    ObjectModification,
    ObjectRemoval,
    describe,
)
from app.models.scene import GenerationMetadata, StructuredPrompt

logger = logging.getLogger(__name__)


@dataclass
class RefinementResult:
    refined_image_url: str
    edit_type: str
    path: str  # structured | mask | text
    operations: list[BaseOperation]
    background: BackgroundState
    overrides: list[ConflictOverride] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    structured_prompt: StructuredPrompt | None = None
    request_id: str | None = None

    @property
    def operations_applied(self) -> list[str]:
        return [describe(op) for op in self.operations]


@dataclass
class _Attempt:
    result: PollResult
    path: str
    notes: list[str] = field(default_factory=list)
    background_applied: bool = True


def augment_prompt(base: str, operations: list[BaseOperation], state: BackgroundState) -> str:
    """Plain-text prompt: original prompt, the edits, and the background to keep."""
    background = state.description
    changes = []
    for op in operations:
        if isinstance(op, BackgroundEdit):
            background = DEFAULT_BACKGROUND if op.is_removal else describe_background(op.target_description)
        else:
            changes.append(describe(op))
    text = base.strip().rstrip(".") or "the same design"
    if changes:
        text += ". Changes: " + ", ".join(changes)
    return f"{text}. Background: {background}"


class RefinementService:
    def __init__(
        self,
        client: GenerationClient,
        chains: BackgroundContextManager,
        cache: GenerationCache,
        config: CompilerConfig | None = None,
    ) -> None:
        self.client = client
        self.chains = chains
        self.cache = cache
        self.config = config or CompilerConfig()

    def analyze(self, instruction: str) -> CompiledInstruction:
        """Compile only: no chain access, no external calls."""
        return compile_instruction(instruction, self.config)

    async def refine(self, instruction: str, image_url: str) -> RefinementResult:
        compiled = compile_instruction(instruction, self.config)
        if not compiled.is_parsed:
            reason = compiled.unparsed[0].reason if compiled.unparsed else NO_RECOGNIZABLE_ACTION
            raise ParseFailure(instruction, reason)

        metadata = self.cache.get(image_url)
        seed = metadata.background_context if metadata else None
        chain, tier = self.chains.get_or_create_chain(image_url, seed=seed)

        async with self.chains.lock_for(chain):
            state = chain.background_state.model_copy()
            logger.info(
                "Refining %r with chain %s (%s, background %r)",
                image_url,
                chain.chain_id,
                tier.value,
                state.description,
            )

            prompt = None
            if metadata is not None and metadata.structured_prompt is not None:
                prompt = mutate(metadata.structured_prompt, compiled.operations, state).prompt

            attempt = await self._generate(compiled, image_url, metadata, prompt, state)

            edit = compiled.background_edit if attempt.background_applied else None
            self.chains.update_chain_background(chain.key, instruction, edit is not None, edit)
            new_state = chain.background_state
            url = attempt.result.image_url or ""
            self.cache.put(
                url,
                GenerationMetadata(
                    original_prompt=metadata.original_prompt if metadata else instruction,
                    structured_prompt=prompt,
                    background_context=new_state,
                    parent_image_url=image_url,
                    request_id=attempt.result.request_id,
                ),
            )
            self.chains.register_alias(chain.key, url)

        return RefinementResult(
            refined_image_url=url,
            edit_type=compiled.edit_type,
            path=attempt.path,
            operations=compiled.operations,
            background=new_state,
            overrides=compiled.overrides,
            warnings=[w.message for w in compiled.warnings]
            + [f"unparsed: {u.source_text}" for u in compiled.unparsed]
            + attempt.notes,
            structured_prompt=prompt,
            request_id=attempt.result.request_id,
        )

    # -- strategies ----------------------------------------------------------

    async def _generate(
        self,
        compiled: CompiledInstruction,
        image_url: str,
        metadata: GenerationMetadata | None,
        prompt: StructuredPrompt | None,
        state: BackgroundState,
    ) -> _Attempt:
        if prompt is not None:
            try:
                return _Attempt(await self.client.generate_structured(prompt), "structured")
            except ExternalServiceFailure as exc:
                logger.warning("Structured generation failed (%s); trying mask-based edits", exc)

            attempt = await self._mask_path(compiled.operations, image_url, state)
            if attempt is not None:
                return attempt
        else:
            logger.info("No generation metadata for %r; using text prompt augmentation", image_url)

        text = augment_prompt(metadata.original_prompt if metadata else "", compiled.operations, state)
        try:
            return _Attempt(await self.client.generate_text(text), "text")
        except ExternalServiceFailure as exc:
            logger.error("All generation strategies failed for %r: %s", compiled.instruction, exc)
            raise ExternalServiceFailure("refine", f"all generation strategies failed ({exc.message})") from exc

    async def _mask_path(
        self, operations: list[BaseOperation], image_url: str, state: BackgroundState
    ) -> _Attempt | None:
        """Apply operations one at a time to the image. None if none succeeded."""
        current = image_url
        last: PollResult | None = None
        notes: list[str] = []
        background_applied = True
        for op in operations:
            try:
                result = await self._mask_step(op, current, state)
            except ExternalServiceFailure as exc:
                logger.warning("Mask-based edit for %r failed: %s", op.source_text, exc)
                notes.append(f"degraded: {describe(op)} ({exc.operation} failed)")
                if isinstance(op, BackgroundEdit):
                    background_applied = False
                continue
            if result is None:
                notes.append(f"degraded: {describe(op)} (no image-level edit)")
                continue
            last, current = result, result.image_url or current
        if last is None:
            logger.warning("Mask-based path produced nothing; falling back to text augmentation")
            return None
        return _Attempt(last, "mask", notes, background_applied)

    async def _mask_step(self, op: BaseOperation, image_url: str, state: BackgroundState) -> PollResult | None:
        if isinstance(op, BackgroundEdit):
            if op.is_removal:
                return await self.client.remove_background(image_url)
            return await self.client.replace_background(image_url, describe_background(op.target_description))
        if isinstance(op, ObjectRemoval):
            mask = await self.client.generate_mask(image_url, op.removed)
            return await self.client.gen_fill(image_url, mask.image_url or "", f"empty area matching {state.description}")
        if isinstance(op, ObjectModification):
            mask = await self.client.generate_mask(image_url, op.modified)
            return await self.client.gen_fill(image_url, mask.image_url or "", f"{op.new_value} {op.modified}")
        if isinstance(op, ObjectAddition):
            mask = await self.client.generate_mask(image_url, op.location or "main subject")
            return await self.client.gen_fill(image_url, mask.image_url or "", op.object)
        return None
