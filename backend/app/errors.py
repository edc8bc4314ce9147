"""Refinement error taxonomy.

Only failures are exceptions. Informational outcomes (segmentation ambiguity,
conflict overrides, chain lookup misses) are dataclass records attached to
results; see app.engine.compiler and app.engine.background.
"""

from __future__ import annotations

NO_RECOGNIZABLE_ACTION = "no_recognizable_action_pattern"


class RefineError(Exception):
    """Base class for refinement errors."""


class ParseFailure(RefineError):
    """No pattern matched the instruction (or any of its segments)."""

    def __init__(self, instruction: str, reason: str = NO_RECOGNIZABLE_ACTION) -> None:
        super().__init__(f"Unparsed instruction {instruction!r}: {reason}")
        self.instruction = instruction
        self.reason = reason


class ExternalServiceFailure(RefineError):
    """A generation/edit/mask call failed."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message


class GenerationTimeout(ExternalServiceFailure):
    """The poll loop exhausted its attempt budget before a terminal status."""

    def __init__(self, operation: str, request_id: str, attempts: int) -> None:
        super().__init__(operation, f"request {request_id} not finished after {attempts} polls")
        self.request_id = request_id
        self.attempts = attempts


class ChainNotFound(RefineError):
    """Explicit cleanup referenced an image identity with no chain."""

    def __init__(self, image_key: str) -> None:
        super().__init__(f"No refinement chain for {image_key!r}")
        self.image_key = image_key
