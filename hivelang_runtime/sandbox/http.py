"""Sandboxed HTTP client exposed to capability bodies as ``http``.

Only the five verb methods are reachable from HiveLang code (see
``exposed_members``). Every request goes through ``request`` which enforces
the transport policy before any I/O, applies the timeout, and converts the
response into an ``HttpOutcome``. Non-2xx statuses are not errors.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Tuple

import httpx
from pydantic import ValidationError

from .errors import SandboxRequestError, SandboxTimeoutError, TransportPolicyError
from .models import HttpOutcome, HttpRequestOptions

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_USER_AGENT = "HiveLang-Integration/1.0"

_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def redact_url(url: Any) -> str:
    """Return ``url`` without its query string or fragment, for logs and errors."""
    text = str(url)
    for sep in ("?", "#"):
        text = text.split(sep, 1)[0]
    return text


class HttpSandbox:
    """Outbound HTTP for capabilities.

    Args:
        client: Optional ``httpx.AsyncClient``; one is created (and owned) when
            omitted. Injecting a client with ``httpx.MockTransport`` is how
            tests run without a network.
        default_timeout_ms: Timeout applied when a call does not set one.
        user_agent: ``User-Agent`` header sent unless the call overrides it.
        allow_loopback_http: Permit plain ``http://`` to localhost addresses.
    """

    exposed_members = frozenset({"get", "post", "put", "patch", "delete"})

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        user_agent: str = DEFAULT_USER_AGENT,
        allow_loopback_http: bool = True,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=False)
        self.default_timeout_ms = default_timeout_ms
        self.user_agent = user_agent
        self.allow_loopback_http = allow_loopback_http
        self._logger = logging.getLogger(__name__)

    # -- verbs -------------------------------------------------------------

    async def get(self, url: str, options: Optional[Mapping[str, Any]] = None) -> HttpOutcome:
        return await self.request("GET", url, options)

    async def post(self, url: str, options: Optional[Mapping[str, Any]] = None) -> HttpOutcome:
        return await self.request("POST", url, options)

    async def put(self, url: str, options: Optional[Mapping[str, Any]] = None) -> HttpOutcome:
        return await self.request("PUT", url, options)

    async def patch(self, url: str, options: Optional[Mapping[str, Any]] = None) -> HttpOutcome:
        return await self.request("PATCH", url, options)

    async def delete(self, url: str, options: Optional[Mapping[str, Any]] = None) -> HttpOutcome:
        return await self.request("DELETE", url, options)

    # -- core --------------------------------------------------------------

    def check_url(self, url: Any) -> httpx.URL:
        """Parse ``url`` and enforce the transport policy.

        Raises:
            TransportPolicyError: If the URL is not https (or loopback http).
        """
        if not isinstance(url, str):
            raise TransportPolicyError(repr(url))
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise TransportPolicyError(redact_url(url)) from exc
        if parsed.scheme == "https" and parsed.host:
            return parsed
        if self.allow_loopback_http and parsed.scheme == "http" and parsed.host in _LOOPBACK_HOSTS:
            return parsed
        raise TransportPolicyError(redact_url(url))

    def _options(self, url: str, options: Optional[Mapping[str, Any]]) -> HttpRequestOptions:
        if options is None:
            return HttpRequestOptions()
        if not isinstance(options, Mapping):
            raise SandboxRequestError("request options must be an object", url=redact_url(url))
        try:
            return HttpRequestOptions.model_validate(dict(options))
        except ValidationError as exc:
            raise SandboxRequestError(f"invalid request options: {exc.errors()[0]['msg']}", url=redact_url(url)) from exc

    def _build_request(
        self, method: str, target: httpx.URL, opts: HttpRequestOptions, timeout: httpx.Timeout
    ) -> httpx.Request:
        query: List[Tuple[str, str]] = list(target.params.multi_items())
        query.extend(opts.query_items())
        if query:
            target = target.copy_with(params=query)

        headers = dict(opts.headers)
        if not any(k.lower() == "user-agent" for k in headers):
            headers["User-Agent"] = self.user_agent

        kwargs: dict = {}
        body = opts.body
        if isinstance(body, (dict, list)):
            kwargs["json"] = body
        elif isinstance(body, (str, bytes)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["content"] = str(body)
        return self._client.build_request(method, target, headers=headers, timeout=timeout, **kwargs)

    async def request(self, method: str, url: Any, options: Optional[Mapping[str, Any]] = None) -> HttpOutcome:
        target = self.check_url(url)
        opts = self._options(url, options)
        timeout_ms = float(opts.timeout or self.default_timeout_ms)
        safe_url = redact_url(url)

        request = self._build_request(method, target, opts, httpx.Timeout(timeout_ms / 1000))
        self._logger.debug("HttpSandbox.request: %s %s timeout=%gms", method, safe_url, timeout_ms)
        try:
            response = await asyncio.wait_for(
                self._client.send(request, follow_redirects=False),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            self._logger.warning("HttpSandbox.request: %s %s timed out after %gms", method, safe_url, timeout_ms)
            raise SandboxTimeoutError(safe_url, timeout_ms) from exc
        except httpx.HTTPError as exc:
            raise SandboxRequestError(f"{method} {safe_url} failed: {exc}", url=safe_url) from exc

        outcome = HttpOutcome.from_response(response)
        self._logger.debug("HttpSandbox.request: %s %s -> %d", method, safe_url, outcome.status)
        return outcome

    # -- lifecycle ---------------------------------------------------------

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpSandbox":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
