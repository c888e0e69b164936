from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable

import httpx
import pytest

from hivelang_runtime.runtime import ExecutionContext
from hivelang_runtime.sandbox import HttpSandbox

FIXTURES = Path(__file__).resolve().parent / "fixtures" / "integrations"


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_send = httpx._client.AsyncClient.send

    def _is_allowed(client: httpx.AsyncClient, url_str: str) -> bool:
        # Mocked and in-process transports never reach the network
        if isinstance(client._transport, (httpx.MockTransport, httpx.ASGITransport)):
            return True
        return any(url_str.startswith(p) for p in allowed_prefixes)

    async def offline_send(self, request, *args, **kwargs):
        url_str = str(request.url)
        if _is_allowed(self, url_str):
            return await orig_send(self, request, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.AsyncClient, "send", offline_send, raising=True)


@pytest.fixture
def integration_sources() -> Dict[str, str]:
    """The bundled example integrations, keyed by file stem."""
    return {path.stem: path.read_text(encoding="utf-8") for path in sorted(FIXTURES.glob("*.hive"))}


@pytest.fixture
def execution_context() -> ExecutionContext:
    return ExecutionContext.model_validate(
        {
            "user": {
                "id": "user-1",
                "email": "ada@example.com",
                "api_key": "key-ada",
                "access_token": "token-ada",
                "token": "trello-ada",
            },
            "integration": {"id": "int-1", "name": "Example", "slug": "example"},
        }
    )


@pytest.fixture
def make_sandbox() -> Callable[..., HttpSandbox]:
    """Build an ``HttpSandbox`` whose client answers through ``httpx.MockTransport``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> HttpSandbox:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpSandbox(client, **kwargs)

    return factory
