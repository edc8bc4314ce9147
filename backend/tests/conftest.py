"""Shared test fixtures."""

from __future__ import annotations

import json

import httpx
import pytest

from app.engine.background import BackgroundContextManager
from app.engine.chain_store import InMemoryChainStore
from app.generation.cache import InMemoryGenerationCache
from app.generation.client import HttpGenerationClient
from app.models.scene import GenerationMetadata, StructuredPrompt


# Sample scene descriptors, shaped like the generation service's echo

SKULL_PROMPT = {
    "short_description": "A grinning cartoon skull mascot with bold outlines",
    "objects": [
        {
            "description": "a grinning cartoon skull",
            "location": "center",
            "relative_size": "large within frame",
            "shape_and_color": "bone white",
            "texture": "smooth, cel shaded",
            "appearance_details": "thick black outlines",
            "number_of_objects": 1,
            "orientation": "facing forward",
        }
    ],
    "background": "transparent background",
    "style_medium": "vector illustration",
}

BULLDOG_PROMPT = {
    "short_description": "A cartoon bulldog in a forest",
    "objects": [
        {
            "description": "a cartoon bulldog wearing a red hat",
            "location": "center",
            "relative_size": "large within frame",
            "shape_and_color": "brown with a red hat",
            "texture": "flat colors",
            "appearance_details": "friendly expression",
            "number_of_objects": 1,
            "orientation": "three-quarter view",
        },
        {
            "description": "white teeth in a wide grin",
            "location": "lower face",
            "relative_size": "small",
            "shape_and_color": "white",
            "texture": "glossy",
            "appearance_details": "",
            "number_of_objects": 1,
            "orientation": "facing forward",
        },
    ],
    "background": "dense green forest with tall trees",
}

LOCAL_URL = "http://localhost:8000/cache/refined_9f8e7d6c5b.png"
REMOTE_URL = "https://cdn.gen.example/results/9f8e7d6c5b/image.png?sig=abc123"


class FakeGenerationService:
    """In-process stand-in for the generation service behind httpx.MockTransport.

    ``fail`` names sub-operations that answer HTTP 500; ``errors`` names ones
    that finish with status ERROR; ``polls_before_done`` controls how many
    IN_PROGRESS answers precede COMPLETED.
    """

    def __init__(
        self,
        fail: set[str] | None = None,
        errors: set[str] | None = None,
        polls_before_done: int = 1,
    ) -> None:
        self.fail = fail or set()
        self.errors = errors or set()
        self.polls_before_done = polls_before_done
        self.calls: list[tuple[str, dict]] = []
        self.polls = 0
        self._jobs: dict[str, str] = {}

    @staticmethod
    def _operation(path: str, payload: dict) -> str:
        if path == "/image/generate":
            return "generate_structured" if "structured_prompt" in payload else "generate_text"
        return {
            "/image/edit/remove_background": "remove_background",
            "/image/edit/replace_background": "replace_background",
            "/objects/mask_generator": "generate_mask",
            "/image/edit/gen_fill": "gen_fill",
        }[path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST":
            payload = json.loads(request.content)
            op = self._operation(path, payload)
            self.calls.append((op, payload))
            if op in self.fail:
                return httpx.Response(500, json={"error": "internal error"})
            request_id = f"req{len(self.calls):06d}"
            self._jobs[request_id] = op
            return httpx.Response(200, json={"request_id": request_id})

        request_id = path.rsplit("/", 1)[-1]
        self.polls += 1
        op = self._jobs[request_id]
        if op in self.errors:
            return httpx.Response(200, json={"status": "ERROR", "error": f"{op} rejected"})
        if self.polls_before_done and self.polls % (self.polls_before_done + 1) != 0:
            return httpx.Response(200, json={"status": "IN_PROGRESS"})
        return httpx.Response(
            200,
            json={
                "status": "COMPLETED",
                "result": {"image_url": f"https://cdn.gen.example/results/{request_id}.png"},
            },
        )

    def client(self, max_attempts: int = 5) -> HttpGenerationClient:
        return HttpGenerationClient(
            base_url="https://gen.example",
            api_key="test-key",
            poll_interval=0,
            max_attempts=max_attempts,
            transport=httpx.MockTransport(self.handler),
        )

    @property
    def operations(self) -> list[str]:
        return [op for op, _ in self.calls]

    def payloads(self, operation: str) -> list[dict]:
        return [p for op, p in self.calls if op == operation]


@pytest.fixture
def skull_prompt() -> StructuredPrompt:
    return StructuredPrompt.model_validate(SKULL_PROMPT)


@pytest.fixture
def bulldog_prompt() -> StructuredPrompt:
    return StructuredPrompt.model_validate(BULLDOG_PROMPT)


@pytest.fixture
def chains() -> BackgroundContextManager:
    return BackgroundContextManager(InMemoryChainStore())


@pytest.fixture
def cache() -> InMemoryGenerationCache:
    return InMemoryGenerationCache()


@pytest.fixture
def skull_metadata(skull_prompt: StructuredPrompt) -> GenerationMetadata:
    return GenerationMetadata(
        original_prompt="a grinning cartoon skull mascot",
        structured_prompt=skull_prompt,
    )


@pytest.fixture
def service() -> FakeGenerationService:
    return FakeGenerationService()
