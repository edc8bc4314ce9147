"""API response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.models.chain import BackgroundState
from app.models.operations import Operation
from app.models.scene import StructuredPrompt


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    rules_registered: int = 0


class OverrideRecord(BaseModel):
    target: str
    discarded: str
    survivor: str
    rule: str


class RefineResponse(BaseModel):
    refined_image_url: str
    edit_type: str
    operations_applied: list[str] = Field(default_factory=list)
    operations: list[Operation] = Field(default_factory=list)
    overrides: list[OverrideRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    path: str = "structured"
    background: BackgroundState
    structured_prompt: StructuredPrompt | None = None


class AnalyzeResponse(BaseModel):
    instruction: str
    edit_type: str
    strategy: str
    segments: list[str] = Field(default_factory=list)
    operations: list[Operation] = Field(default_factory=list)
    unparsed: list[str] = Field(default_factory=list)
    overrides: list[OverrideRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ChainResponse(BaseModel):
    image_url: str
    chain_id: str | None = None
    lookup_tier: str
    background: BackgroundState
    history_length: int = 0
