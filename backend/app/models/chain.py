"""Refinement chain + background state models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_BACKGROUND = "transparent background"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BackgroundKind(str, Enum):
    DEFAULT = "default"
    EXPLICIT = "explicit"
    REMOVED = "removed"
    INHERITED = "inherited"


class BackgroundState(BaseModel):
    kind: BackgroundKind = BackgroundKind.DEFAULT
    description: str = DEFAULT_BACKGROUND
    is_explicitly_set: bool = False
    preserve_across_refinements: bool = True
    set_at: datetime = Field(default_factory=_now)

    @classmethod
    def default(cls) -> BackgroundState:
        return cls()


class HistoryEntry(BaseModel):
    instruction: str
    was_background_op: bool
    prior_state: BackgroundState
    recorded_at: datetime = Field(default_factory=_now)


class RefinementChain(BaseModel):
    """Background lineage for one logical image, keyed by canonical image URL."""

    key: str
    chain_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    background_state: BackgroundState = Field(default_factory=BackgroundState.default)
    history: list[HistoryEntry] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def keys(self) -> list[str]:
        return [self.key, *self.aliases]
