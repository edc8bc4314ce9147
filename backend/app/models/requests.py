"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RefineRequest(BaseModel):
    instruction: str = Field(..., min_length=1, description="Refinement instruction in natural language")
    image_url: str = Field(..., min_length=1, description="URL of the image being refined")


class AnalyzeRequest(BaseModel):
    instruction: str = Field(..., min_length=1, description="Instruction to compile without generating")
