"""Master API router: mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from app.api import chains, health, refine

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(refine.router)
api_router.include_router(chains.router)
