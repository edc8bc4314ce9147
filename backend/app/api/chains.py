"""Refinement chain inspection and explicit cleanup."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import get_chain_manager
from app.engine.background import BackgroundContextManager
from app.errors import ChainNotFound
from app.models.responses import ChainResponse

router = APIRouter(prefix="/chains")


@router.get("/background", response_model=ChainResponse)
async def current_background(
    image_url: str = Query(..., min_length=1),
    chains: BackgroundContextManager = Depends(get_chain_manager),
) -> ChainResponse:
    found = chains.lookup(image_url)
    return ChainResponse(
        image_url=image_url,
        chain_id=found.chain.chain_id if found.chain else None,
        lookup_tier=found.tier.value,
        background=found.state,
        history_length=len(found.chain.history) if found.chain else 0,
    )


@router.delete("", response_model=ChainResponse)
async def delete_chain(
    image_url: str = Query(..., min_length=1),
    chains: BackgroundContextManager = Depends(get_chain_manager),
) -> ChainResponse:
    try:
        chain = chains.delete_chain(image_url)
    except ChainNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ChainResponse(
        image_url=image_url,
        chain_id=chain.chain_id,
        lookup_tier="deleted",
        background=chain.background_state,
        history_length=len(chain.history),
    )
