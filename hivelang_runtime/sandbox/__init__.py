"""Sandboxed outbound HTTP for capability bodies.

``HttpSandbox`` wraps an ``httpx.AsyncClient`` and is bound as ``http`` in every
capability invocation. It enforces the transport policy (https, or loopback
http), merges query params, applies per-call timeouts and returns an
``HttpOutcome`` for every completed request regardless of status.
"""

from .errors import SandboxError, SandboxRequestError, SandboxTimeoutError, TransportPolicyError
from .http import DEFAULT_TIMEOUT_MS, DEFAULT_USER_AGENT, HttpSandbox, redact_url
from .models import HttpOutcome, HttpRequestOptions

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_USER_AGENT",
    "HttpOutcome",
    "HttpRequestOptions",
    "HttpSandbox",
    "SandboxError",
    "SandboxRequestError",
    "SandboxTimeoutError",
    "TransportPolicyError",
    "redact_url",
]
