from typing import AsyncGenerator, Callable, List
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hivelang_runtime.runtime import InMemorySourceProvider, IntegrationService, RuntimeCache


class Upstream:
    """Mutable MockTransport handler standing in for third-party APIs."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def provider() -> InMemorySourceProvider:
    return InMemorySourceProvider()


@pytest.fixture
def service(provider, make_sandbox, upstream) -> IntegrationService:
    return IntegrationService(provider, cache=RuntimeCache(max_size=10), sandbox=make_sandbox(upstream))


@pytest_asyncio.fixture(name="client")
async def client_fixture(provider, service) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from hivelang_runtime.server.main import app
    from hivelang_runtime.server.services.deps import get_integration_service, get_source_provider

    app.dependency_overrides[get_integration_service] = lambda: service
    app.dependency_overrides[get_source_provider] = lambda: provider

    # Mock the lifespan so no shared service is built during tests
    async def mock_lifespan(app):
        yield

    with patch("hivelang_runtime.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()
