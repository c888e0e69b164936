import pytest
from httpx import AsyncClient

from hivelang_runtime.server.core import constant

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


async def test_health_check(client: AsyncClient):
    response = await client.get("http://localhost/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_version(client: AsyncClient):
    response = await client.get("http://localhost/version")
    assert response.status_code == 200
    assert response.json() == {"version": constant.VERSION, "schema_version": constant.SCHEMA_VERSION}


async def test_openapi_is_served_under_api_prefix(client: AsyncClient):
    response = await client.get(f"{constant.API_V1_STR}/openapi.json")
    assert response.status_code == 200
    assert response.json()["info"]["title"] == constant.PROJECT_NAME


async def test_runtime_status(client: AsyncClient, service):
    await service.cache.put("github", object())
    response = await client.get("http://localhost/health/runtime")
    assert response.status_code == 200
    assert response.json() == {"cached_integrations": ["github"], "size": 1, "capacity": 10, "eviction": "fifo"}
