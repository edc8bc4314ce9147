"""Atomic edit operations extracted from a refinement instruction."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from app.errors import NO_RECOGNIZABLE_ACTION

# How an operation was obtained. "recovered" marks lossy fallback strategies
# and is down-weighted by the conflict resolver.
Origin = Literal["pattern", "template", "list", "inherited", "recovered"]


class BaseOperation(BaseModel):
    """Fields shared by every operation variant."""

    source_text: str
    confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    priority: int = 5  # lower = resolved first
    is_valid: bool = True
    origin: Origin = "pattern"
    rule_id: str | None = None
    order: int = 0  # position in the original instruction

    @property
    def target(self) -> str:
        raise NotImplementedError

    @property
    def value(self) -> str | None:
        return None

    def signature(self) -> tuple[str, str, str | None]:
        """(type, target, value): what must survive a re-parse."""
        return (self.type, self.target, self.value)  # type: ignore[attr-defined]


class BackgroundEdit(BaseOperation):
    type: Literal["background_edit"] = "background_edit"
    target_description: str
    is_removal: bool = False
    priority: int = 1

    @property
    def target(self) -> str:
        return "background"

    @property
    def value(self) -> str | None:
        return None if self.is_removal else self.target_description


class ObjectAddition(BaseOperation):
    type: Literal["object_addition"] = "object_addition"
    object: str  # descriptive phrase, e.g. "red hat"
    key: str  # recognized object noun, e.g. "hat"
    location: str | None = None
    priority: int = 2

    @property
    def target(self) -> str:
        return self.key

    @property
    def value(self) -> str | None:
        return self.object


class ObjectModification(BaseOperation):
    type: Literal["object_modification"] = "object_modification"
    modified: str  # target object, e.g. "teeth"
    new_value: str  # e.g. "golden"
    is_color: bool = False
    priority: int = 3

    @property
    def target(self) -> str:
        return self.modified

    @property
    def value(self) -> str | None:
        return self.new_value


class ObjectRemoval(BaseOperation):
    type: Literal["object_removal"] = "object_removal"
    removed: str
    priority: int = 4

    @property
    def target(self) -> str:
        return self.removed


class GeneralEdit(BaseOperation):
    """Low-confidence fallback for instructions with an action but no pattern."""

    type: Literal["general_edit"] = "general_edit"
    subject: str
    note: str
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    priority: int = 5

    @property
    def target(self) -> str:
        return self.subject

    @property
    def value(self) -> str | None:
        return self.note


class UnparsedInstruction(BaseOperation):
    """Nothing matched. Callers must surface this, never coerce it into an edit."""

    type: Literal["unparsed"] = "unparsed"
    is_valid: bool = False
    confidence: float = 0.0
    reason: str = NO_RECOGNIZABLE_ACTION
    priority: int = 99

    @property
    def target(self) -> str:
        return ""


Operation = Annotated[
    Union[
        BackgroundEdit,
        ObjectAddition,
        ObjectModification,
        ObjectRemoval,
        GeneralEdit,
        UnparsedInstruction,
    ],
    Field(discriminator="type"),
]


def describe(op: BaseOperation) -> str:
    """Short human-readable phrase for an operation."""
    if isinstance(op, BackgroundEdit):
        if op.is_removal:
            return "removed the background"
        return f"set background to {op.target_description}"
    if isinstance(op, ObjectAddition):
        where = f" on {op.location}" if op.location else ""
        return f"added {op.object}{where}"
    if isinstance(op, ObjectModification):
        return f"made {op.modified} {op.new_value}"
    if isinstance(op, ObjectRemoval):
        return f"removed {op.removed}"
    if isinstance(op, GeneralEdit):
        return f"adjusted {op.subject} ({op.note})"
    return f"could not parse {op.source_text!r}"
