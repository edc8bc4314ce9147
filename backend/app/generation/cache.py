"""Generation cache: image URL -> the metadata that produced it."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from app.engine.background import normalize_image_key, strip_query
from app.models.scene import GenerationMetadata

logger = logging.getLogger(__name__)


class GenerationCache(ABC):
    @abstractmethod
    def get(self, image_url: str) -> GenerationMetadata | None: ...

    @abstractmethod
    def put(self, image_url: str, metadata: GenerationMetadata) -> None: ...


class InMemoryGenerationCache(GenerationCache):
    """Keyed by normalized URL; a miss retries without the query string."""

    def __init__(self) -> None:
        self._entries: dict[str, GenerationMetadata] = {}

    def get(self, image_url: str) -> GenerationMetadata | None:
        key = normalize_image_key(image_url)
        hit = self._entries.get(key)
        if hit is None:
            bare = strip_query(key)
            hit = next((m for k, m in self._entries.items() if strip_query(k) == bare), None)
        if hit is None:
            logger.debug("Generation cache miss for %r", image_url)
        return hit

    def put(self, image_url: str, metadata: GenerationMetadata) -> None:
        self._entries[normalize_image_key(image_url)] = metadata

    def __len__(self) -> int:
        return len(self._entries)
