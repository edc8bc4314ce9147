"""FastAPI dependency injection."""

from __future__ import annotations

from fastapi import Depends

from app.config import Settings, settings
from app.engine.background import BackgroundContextManager
from app.engine.chain_store import ChainStore, InMemoryChainStore, JsonlChainStore
from app.engine.refiner import RefinementService
from app.generation.cache import GenerationCache, InMemoryGenerationCache
from app.generation.client import GenerationClient, HttpGenerationClient

# Process-wide singletons
_chains: BackgroundContextManager | None = None
_cache: GenerationCache | None = None


def get_settings() -> Settings:
    return settings


def _make_store(s: Settings) -> ChainStore:
    if s.chain_store_dir:
        return JsonlChainStore(s.chain_store_dir)
    return InMemoryChainStore()


def get_chain_manager() -> BackgroundContextManager:
    global _chains
    if _chains is None:
        _chains = BackgroundContextManager(_make_store(settings))
    return _chains


def get_generation_cache() -> GenerationCache:
    global _cache
    if _cache is None:
        _cache = InMemoryGenerationCache()
    return _cache


def get_generation_client(s: Settings = Depends(get_settings)) -> GenerationClient:
    return HttpGenerationClient(
        base_url=s.generation_api_url,
        api_key=s.generation_api_key,
        timeout=s.generation_timeout_seconds,
        poll_interval=s.poll_interval_seconds,
        max_attempts=s.poll_max_attempts,
    )


def get_refinement_service(
    client: GenerationClient = Depends(get_generation_client),
    chains: BackgroundContextManager = Depends(get_chain_manager),
    cache: GenerationCache = Depends(get_generation_cache),
) -> RefinementService:
    return RefinementService(client=client, chains=chains, cache=cache)
