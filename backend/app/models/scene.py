"""Structured scene descriptor sent to the generation service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.chain import BackgroundState


class StructuredPrompt(BaseModel):
    """JSON scene descriptor: objects + background + description.

    Object records are opaque bags of descriptive fields (description,
    location, relative_size, shape_and_color, texture, appearance_details,
    number_of_objects, orientation). Unknown top-level keys are kept.
    """

    model_config = ConfigDict(extra="allow")

    short_description: str = ""
    objects: list[dict[str, Any]] = Field(default_factory=list)
    background: str = ""


class GenerationMetadata(BaseModel):
    """What the generation cache remembers about an image URL."""

    original_prompt: str = ""
    structured_prompt: StructuredPrompt | None = None
    background_context: BackgroundState | None = None
    parent_image_url: str | None = None
    request_id: str | None = None
