"""Register, execute and invalidate integrations through the HTTP API."""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hivelang_runtime.runtime import InMemorySourceProvider, IntegrationService, RuntimeCache

pytestmark = pytest.mark.asyncio

PREFIX = "/api/v1/integrations"


def trello_api(request: httpx.Request) -> httpx.Response:
    if request.url.params.get("token") != "good-token":
        return httpx.Response(401, json={"error": "invalid token"})
    return httpx.Response(200, json=[{"id": "l1", "name": "Todo", "pos": 1}])


@pytest_asyncio.fixture
async def api(make_sandbox) -> AsyncGenerator[AsyncClient, None]:
    from hivelang_runtime.server.main import app
    from hivelang_runtime.server.services.deps import get_integration_service, get_source_provider

    provider = InMemorySourceProvider()
    service = IntegrationService(provider, cache=RuntimeCache(max_size=5), sandbox=make_sandbox(trello_api))
    app.dependency_overrides[get_integration_service] = lambda: service
    app.dependency_overrides[get_source_provider] = lambda: provider
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def trello_context(token: str) -> dict:
    return {
        "user": {"id": "u1", "api_key": "k", "token": token},
        "integration": {"id": "trello-1", "name": "Trello", "slug": "trello"},
    }


async def test_full_lifecycle(api, integration_sources):
    registered = await api.put(
        f"{PREFIX}/trello-1", json={"name": "Trello", "slug": "trello", "source": integration_sources["trello"]}
    )
    assert registered.status_code == 200
    assert registered.json()["compiled_capability_names"] == ["get_lists", "move_card", "summary"]

    ok = await api.post(
        f"{PREFIX}/execute",
        json={
            "integration_id": "trello-1",
            "capability": "get_lists",
            "params": ["board"],
            "context": trello_context("good-token"),
        },
    )
    assert ok.json()["value"] == [{"id": "l1", "name": "Todo", "pos": 1}]

    denied = await api.post(
        f"{PREFIX}/execute",
        json={
            "integration_id": "trello-1",
            "capability": "get_lists",
            "params": {"board_id": "board"},
            "context": trello_context("stale"),
        },
    )
    body = denied.json()
    assert body["success"] is False
    assert body["error_kind"] == "capability_error"
    assert "Failed to get lists" in body["message"]

    invalidated = await api.delete(f"{PREFIX}/trello-1/cache")
    assert invalidated.json() == {"integration_id": "trello-1", "invalidated": True}


async def test_test_flow_matches_execute(api, integration_sources):
    response = await api.post(
        f"{PREFIX}/test",
        json={
            "source": integration_sources["trello"],
            "capability": "get_lists",
            "params": ["board"],
            "test_credentials": {"api_key": "k", "token": "good-token"},
        },
    )
    body = response.json()
    assert body["stage"] == "complete"
    assert body["result"] == [{"id": "l1", "name": "Todo", "pos": 1}]
    assert body["compiled_capability_names"] == ["get_lists", "move_card", "summary"]


async def test_every_bundled_integration_compiles(api, integration_sources):
    for stem, source in integration_sources.items():
        response = await api.post(f"{PREFIX}/compile", json={"source": source})
        assert response.status_code == 200, stem
        assert response.json()["warnings"] == []
