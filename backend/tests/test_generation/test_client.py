"""Tests for the submit/poll generation client."""

import asyncio
import json

import httpx
import pytest

from app.errors import ExternalServiceFailure, GenerationTimeout
from app.generation.client import HttpGenerationClient
from app.models.scene import StructuredPrompt
from tests.conftest import FakeGenerationService


def _client(handler) -> HttpGenerationClient:
    return HttpGenerationClient(
        base_url="https://gen.example/",
        api_key="secret",
        poll_interval=0,
        max_attempts=3,
        transport=httpx.MockTransport(handler),
    )


class TestRun:
    def test_polls_until_completed(self, service: FakeGenerationService):
        result = asyncio.run(service.client().generate_text("a skull wearing a hat"))
        assert result.status == "COMPLETED"
        assert result.request_id == "req000001"
        assert result.image_url == "https://cdn.gen.example/results/req000001.png"
        assert service.polls == 2
        assert service.payloads("generate_text") == [{"prompt": "a skull wearing a hat"}]

    def test_structured_prompt_sent_as_json_string(
        self, service: FakeGenerationService, skull_prompt: StructuredPrompt
    ):
        asyncio.run(service.client().generate_structured(skull_prompt, seed=7))
        payload = service.payloads("generate_structured")[0]
        assert payload["seed"] == 7
        sent = json.loads(payload["structured_prompt"])
        assert sent["background"] == "transparent background"
        assert sent["style_medium"] == "vector illustration"

    def test_error_status(self):
        service = FakeGenerationService(errors={"remove_background"})
        with pytest.raises(ExternalServiceFailure) as exc_info:
            asyncio.run(service.client().remove_background("https://cdn.gen.example/a.png"))
        assert exc_info.value.operation == "remove_background"
        assert exc_info.value.message == "remove_background rejected"

    def test_http_error(self):
        service = FakeGenerationService(fail={"generate_mask"})
        with pytest.raises(ExternalServiceFailure) as exc_info:
            asyncio.run(service.client().generate_mask("https://cdn.gen.example/a.png", "hat"))
        assert exc_info.value.message == "HTTP 500"
        assert service.polls == 0

    def test_timeout(self):
        service = FakeGenerationService(polls_before_done=3)
        with pytest.raises(GenerationTimeout) as exc_info:
            asyncio.run(service.client(max_attempts=2).generate_text("slow"))
        assert exc_info.value.attempts == 2
        assert exc_info.value.request_id == "req000001"
        assert service.polls == 2

    def test_timeout_is_a_service_failure(self):
        assert issubclass(GenerationTimeout, ExternalServiceFailure)


class TestSubOperations:
    def test_mask_and_fill_payloads(self, service: FakeGenerationService):
        client = service.client()

        async def edit():
            mask = await client.generate_mask("https://cdn.gen.example/a.png", "teeth")
            return await client.gen_fill("https://cdn.gen.example/a.png", mask.image_url, "gold teeth")

        result = asyncio.run(edit())
        assert service.operations == ["generate_mask", "gen_fill"]
        assert service.payloads("generate_mask") == [{"image": "https://cdn.gen.example/a.png", "prompt": "teeth"}]
        assert service.payloads("gen_fill") == [
            {
                "image": "https://cdn.gen.example/a.png",
                "mask": "https://cdn.gen.example/results/req000001.png",
                "prompt": "gold teeth",
            }
        ]
        assert result.image_url == "https://cdn.gen.example/results/req000002.png"

    def test_replace_background_payload(self, service: FakeGenerationService):
        asyncio.run(service.client().replace_background("https://cdn.gen.example/a.png", "city skyline"))
        assert service.payloads("replace_background") == [
            {"image": "https://cdn.gen.example/a.png", "prompt": "city skyline"}
        ]


class TestHttp:
    def test_api_token_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["token"] = request.headers.get("api_token")
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"request_id": "abc"})

        request_id = asyncio.run(_client(handler).submit("generate_text", {"prompt": "x"}))
        assert request_id == "abc"
        assert seen == {"token": "secret", "url": "https://gen.example/image/generate"}

    def test_missing_request_id(self):
        client = _client(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ExternalServiceFailure, match="no request_id"):
            asyncio.run(client.submit("generate_text", {"prompt": "x"}))

    def test_non_json_response(self):
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(ExternalServiceFailure, match="not JSON"):
            asyncio.run(client.submit("generate_text", {"prompt": "x"}))

    def test_transport_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ExternalServiceFailure, match="timed out"):
            asyncio.run(_client(handler).submit("generate_text", {"prompt": "x"}))

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ExternalServiceFailure, match="refused"):
            asyncio.run(_client(handler).submit("generate_text", {"prompt": "x"}))

    def test_unknown_status_counts_as_in_progress(self):
        client = _client(lambda request: httpx.Response(200, json={"status": "queued"}))
        result = asyncio.run(client.poll("abc"))
        assert result.status == "IN_PROGRESS"
        assert result.image_url is None

    def test_structured_prompt_echo_parsed(self):
        echo = json.dumps({"background": "city", "objects": []})
        client = _client(
            lambda request: httpx.Response(
                200,
                json={"status": "COMPLETED", "result": {"image_url": "https://x/y.png", "structured_prompt": echo}},
            )
        )
        result = asyncio.run(client.poll("abc"))
        assert result.structured_prompt == {"background": "city", "objects": []}

    def test_completed_without_image(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"request_id": "abc"})
            return httpx.Response(200, json={"status": "COMPLETED", "result": {}})

        with pytest.raises(ExternalServiceFailure, match="without an image"):
            asyncio.run(_client(handler).generate_text("x"))
