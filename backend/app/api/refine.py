"""POST /api/refine -- compile an instruction and regenerate the image.
POST /api/refine/analyze -- compile only (dry run)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_refinement_service
from app.engine.compiler import compile_instruction
from app.engine.refiner import RefinementService
from app.errors import ExternalServiceFailure, ParseFailure
from app.models.requests import AnalyzeRequest, RefineRequest
from app.models.responses import AnalyzeResponse, OverrideRecord, RefineResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/refine", response_model=RefineResponse)
async def refine(
    req: RefineRequest,
    service: RefinementService = Depends(get_refinement_service),
) -> RefineResponse:
    try:
        result = await service.refine(req.instruction, req.image_url)
    except ParseFailure as exc:
        logger.info("Rejected unparsed instruction %r", exc.instruction)
        raise HTTPException(
            status_code=422,
            detail={"error": exc.reason, "instruction": exc.instruction},
        ) from exc
    except ExternalServiceFailure as exc:
        raise HTTPException(
            status_code=502,
            detail={"error": "external_service_failure", "operation": exc.operation, "message": exc.message},
        ) from exc

    return RefineResponse(
        refined_image_url=result.refined_image_url,
        edit_type=result.edit_type,
        operations_applied=result.operations_applied,
        operations=result.operations,
        overrides=[OverrideRecord(**o.as_dict()) for o in result.overrides],
        warnings=result.warnings,
        path=result.path,
        background=result.background,
        structured_prompt=result.structured_prompt,
    )


@router.post("/refine/analyze", response_model=AnalyzeResponse)
async def analyze(req: AnalyzeRequest) -> AnalyzeResponse:
    compiled = compile_instruction(req.instruction)
    seg = compiled.segmentation
    return AnalyzeResponse(
        instruction=req.instruction,
        edit_type=compiled.edit_type,
        strategy=compiled.strategy,
        segments=seg.instructions if seg else [],
        operations=compiled.operations,
        unparsed=[u.source_text for u in compiled.unparsed],
        overrides=[OverrideRecord(**o.as_dict()) for o in compiled.overrides],
        warnings=[w.message for w in compiled.warnings],
    )
