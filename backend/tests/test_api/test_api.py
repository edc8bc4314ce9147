"""Tests for API endpoints (generation service replaced by an in-process fake)."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_chain_manager, get_generation_cache, get_generation_client
from app.engine.registry import get_registry
from app.errors import NO_RECOGNIZABLE_ACTION
from app.main import app
from tests.conftest import LOCAL_URL, REMOTE_URL, FakeGenerationService


@pytest.fixture
def client(service, chains, cache):
    app.dependency_overrides[get_generation_client] = lambda: service.client()
    app.dependency_overrides[get_chain_manager] = lambda: chains
    app.dependency_overrides[get_generation_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["rules_registered"] == get_registry().count
    assert data["rules_registered"] > 0


# -- Analyze --------------------------------------------------------------------


def test_analyze_multi_step(client, service):
    response = client.post("/api/refine/analyze", json={"instruction": "add a hat and make the teeth golden"})
    assert response.status_code == 200
    data = response.json()
    assert data["strategy"] == "template"
    assert data["edit_type"] == "multi_step"
    assert data["segments"] == ["add a hat", "make the teeth golden"]
    assert [op["type"] for op in data["operations"]] == ["object_addition", "object_modification"]
    assert service.calls == []


def test_analyze_reports_overrides(client):
    response = client.post("/api/refine/analyze", json={"instruction": "add a hat and remove the hat"})
    data = response.json()
    assert data["edit_type"] == "object_removal"
    assert data["overrides"] == [
        {"target": "hat", "discarded": "add a hat", "survivor": "remove the hat", "rule": "removal_wins"}
    ]


def test_analyze_unparsed(client):
    response = client.post("/api/refine/analyze", json={"instruction": "hello there"})
    assert response.status_code == 200
    data = response.json()
    assert data["edit_type"] == "unparsed"
    assert data["unparsed"] == ["hello there"]
    assert data["operations"] == []


def test_analyze_empty_instruction(client):
    response = client.post("/api/refine/analyze", json={"instruction": ""})
    assert response.status_code == 422


# -- Refine ---------------------------------------------------------------------


def test_refine_structured(client, cache, skull_metadata):
    cache.put(LOCAL_URL, skull_metadata)
    response = client.post("/api/refine", json={"instruction": "add a hat", "image_url": LOCAL_URL})
    assert response.status_code == 200
    data = response.json()
    assert data["path"] == "structured"
    assert data["edit_type"] == "object_addition"
    assert data["refined_image_url"] == "https://cdn.gen.example/results/req000001.png"
    assert data["operations_applied"] == ["added hat"]
    assert data["background"]["kind"] == "default"
    assert len(data["structured_prompt"]["objects"]) == 2


def test_refine_unparsed_is_422(client, service):
    response = client.post("/api/refine", json={"instruction": "hello there", "image_url": LOCAL_URL})
    assert response.status_code == 422
    assert response.json()["detail"] == {"error": NO_RECOGNIZABLE_ACTION, "instruction": "hello there"}
    assert service.calls == []


def test_refine_service_failure_is_502(client):
    failing = FakeGenerationService(fail={"generate_text"})
    app.dependency_overrides[get_generation_client] = lambda: failing.client()
    response = client.post("/api/refine", json={"instruction": "add a hat", "image_url": REMOTE_URL})
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["error"] == "external_service_failure"
    assert detail["operation"] == "refine"


# -- Chains ---------------------------------------------------------------------


def test_chain_background_after_refine(client, cache, skull_metadata):
    cache.put(LOCAL_URL, skull_metadata)
    client.post("/api/refine", json={"instruction": "change the background to a city", "image_url": LOCAL_URL})

    response = client.get("/api/chains/background", params={"image_url": REMOTE_URL})
    assert response.status_code == 200
    data = response.json()
    assert data["lookup_tier"] == "path_id"
    assert data["background"]["description"] == "city skyline with tall buildings"
    assert data["history_length"] == 1


def test_chain_background_unknown_image(client):
    response = client.get("/api/chains/background", params={"image_url": LOCAL_URL})
    data = response.json()
    assert data["lookup_tier"] == "default"
    assert data["chain_id"] is None
    assert data["background"]["description"] == "transparent background"


def test_delete_chain(client, chains):
    chains.get_or_create_chain(LOCAL_URL)
    response = client.delete("/api/chains", params={"image_url": LOCAL_URL})
    assert response.status_code == 200
    assert response.json()["lookup_tier"] == "deleted"

    response = client.delete("/api/chains", params={"image_url": LOCAL_URL})
    assert response.status_code == 404
