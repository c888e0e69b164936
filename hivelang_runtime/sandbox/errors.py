"""Error types specific to the HTTP sandbox.

Purpose:
- Provide typed exceptions raised by ``HttpSandbox`` when a capability's
  outbound request cannot be performed.
- Expose the target URL (without its query string) for diagnosis.

Usage:
- ``TransportPolicyError`` means the request was refused before any I/O.
- ``SandboxTimeoutError`` is also a ``TimeoutError``.
- Non-2xx responses are not errors: they come back as an ``HttpOutcome`` with
  ``ok`` set to ``False``.
"""

from __future__ import annotations

from typing import Optional


class SandboxError(Exception):
    """Base error for sandboxed HTTP failures.

    Args:
        message: Human-readable error description.
        url: Optional request URL, stripped of its query string.
    """

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class TransportPolicyError(SandboxError):
    """Raised when a URL is neither https nor loopback http."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Only HTTPS URLs are allowed (or http://localhost for development): {url}", url=url)


class SandboxRequestError(SandboxError):
    """Raised for invalid request options and network failures."""


class SandboxTimeoutError(SandboxError, TimeoutError):
    """Raised when a request does not complete within its timeout.

    Args:
        url: Request URL.
        timeout_ms: The timeout that was exceeded.
    """

    def __init__(self, url: str, timeout_ms: float) -> None:
        super().__init__(f"Request to {url} timed out after {timeout_ms:g} ms", url=url)
        self.timeout_ms = timeout_ms
