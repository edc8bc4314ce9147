"""Async submit/poll client for the image generation/edit service.

Every sub-operation follows the same protocol:

    POST <endpoint>            -> {"request_id": ...}
    GET  /status/<request_id>  -> {"status": "IN_PROGRESS" | "COMPLETED" | "ERROR",
                                   "result": {"image_url": ..., "structured_prompt": ...},
                                   "error": ...}

``run`` polls with a fixed backoff and gives up after ``max_attempts``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

import httpx
from pydantic import BaseModel

from app.errors import ExternalServiceFailure, GenerationTimeout
from app.models.scene import StructuredPrompt

logger = logging.getLogger(__name__)

Status = Literal["IN_PROGRESS", "COMPLETED", "ERROR"]

ENDPOINTS = {
    "generate_structured": "/image/generate",
    "generate_text": "/image/generate",
    "remove_background": "/image/edit/remove_background",
    "replace_background": "/image/edit/replace_background",
    "generate_mask": "/objects/mask_generator",
    "gen_fill": "/image/edit/gen_fill",
}


class PollResult(BaseModel):
    request_id: str
    status: Status
    image_url: str | None = None
    structured_prompt: dict[str, Any] | None = None
    error: str | None = None


class GenerationClient(ABC):
    """Submit/poll protocol plus the sub-operations built on it."""

    @abstractmethod
    async def submit(self, operation: str, payload: dict[str, Any]) -> str:
        """Start ``operation``; returns the request id."""

    @abstractmethod
    async def poll(self, request_id: str) -> PollResult: ...

    poll_interval: float = 2.0
    max_attempts: int = 60

    async def run(self, operation: str, payload: dict[str, Any]) -> PollResult:
        """Submit, then poll until COMPLETED/ERROR or the attempt budget runs out."""
        request_id = await self.submit(operation, payload)
        for attempt in range(1, self.max_attempts + 1):
            await asyncio.sleep(self.poll_interval)
            result = await self.poll(request_id)
            if result.status == "COMPLETED":
                if not result.image_url:
                    raise ExternalServiceFailure(operation, f"request {request_id} completed without an image")
                logger.info("%s %s completed after %d poll(s)", operation, request_id, attempt)
                return result
            if result.status == "ERROR":
                raise ExternalServiceFailure(operation, result.error or f"request {request_id} failed")
        raise GenerationTimeout(operation, request_id, self.max_attempts)

    # -- sub-operations ------------------------------------------------------

    async def generate_structured(self, prompt: StructuredPrompt, seed: int | None = None) -> PollResult:
        payload: dict[str, Any] = {"structured_prompt": json.dumps(prompt.model_dump())}
        if seed is not None:
            payload["seed"] = seed
        return await self.run("generate_structured", payload)

    async def generate_text(self, prompt: str) -> PollResult:
        return await self.run("generate_text", {"prompt": prompt})

    async def remove_background(self, image_url: str) -> PollResult:
        return await self.run("remove_background", {"image": image_url})

    async def replace_background(self, image_url: str, prompt: str) -> PollResult:
        return await self.run("replace_background", {"image": image_url, "prompt": prompt})

    async def generate_mask(self, image_url: str, object_name: str) -> PollResult:
        return await self.run("generate_mask", {"image": image_url, "prompt": object_name})

    async def gen_fill(self, image_url: str, mask_url: str, prompt: str) -> PollResult:
        return await self.run("gen_fill", {"image": image_url, "mask": mask_url, "prompt": prompt})


class HttpGenerationClient(GenerationClient):
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        poll_interval: float = 2.0,
        max_attempts: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["api_token"] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with self._client() as c:
                r = await c.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise ExternalServiceFailure(operation, f"timed out calling {path}") from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceFailure(operation, str(exc)) from exc
        if r.status_code >= 400:
            logger.warning("%s returned %d: %s", path, r.status_code, r.text[:200])
            raise ExternalServiceFailure(operation, f"HTTP {r.status_code}")
        try:
            return r.json()
        except ValueError as exc:
            raise ExternalServiceFailure(operation, "response was not JSON") from exc

    async def submit(self, operation: str, payload: dict[str, Any]) -> str:
        path = ENDPOINTS[operation]
        data = await self._request(operation, "POST", path, json=payload)
        request_id = data.get("request_id")
        if not request_id:
            raise ExternalServiceFailure(operation, "no request_id in submit response")
        logger.debug("Submitted %s as %s", operation, request_id)
        return str(request_id)

    async def poll(self, request_id: str) -> PollResult:
        data = await self._request("poll", "GET", f"/status/{request_id}")
        result = data.get("result") or {}
        status = str(data.get("status", "")).upper()
        if status not in ("COMPLETED", "ERROR"):
            status = "IN_PROGRESS"
        return PollResult(
            request_id=request_id,
            status=status,
            image_url=result.get("image_url"),
            structured_prompt=_as_dict(result.get("structured_prompt")),
            error=data.get("error"),
        )


def _as_dict(value: Any) -> dict[str, Any] | None:
    """The service echoes the structured prompt either as an object or a JSON string."""
    if value is None or isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None
