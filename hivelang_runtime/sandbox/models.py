"""Pydantic models for sandboxed HTTP requests and their outcomes."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _header_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class HttpRequestOptions(BaseModel):
    """Options accepted by the sandbox verbs.

    ``timeout`` is in milliseconds; ``timeoutMs`` and ``timeout_ms`` are accepted
    as spellings of the same option.
    """

    model_config = ConfigDict(extra="forbid")

    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    params: Dict[str, Any] = Field(default_factory=dict)
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("timeout", "timeoutMs", "timeout_ms"),
    )

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): _header_text(v) for k, v in value.items() if v is not None}
        return value

    @field_validator("params", mode="before")
    @classmethod
    def _default_params(cls, value: Any) -> Any:
        return {} if value is None else value

    def query_items(self) -> List[Tuple[str, str]]:
        """Params as query pairs: ``None`` dropped, booleans as ``true``/``false``."""
        items: List[Tuple[str, str]] = []
        for key, value in self.params.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                items.extend((key, _header_text(v) or "") for v in value if v is not None)
            else:
                items.append((key, _header_text(value) or ""))
        return items


class HttpOutcome(BaseModel):
    """Observed result of one sandboxed request.

    Attributes:
        status: HTTP status code.
        ok: Whether the status is in the 200-299 range.
        headers: Response headers in the order and case they were received.
        data: Parsed JSON body, or ``None`` when the body is not JSON.
        text: Raw body text.
        error: The ``error`` (or ``errors``) field of a JSON object body when
            the status is unsuccessful; otherwise ``None``.
    """

    model_config = ConfigDict(frozen=True)

    status: int
    ok: bool
    headers: Dict[str, str] = Field(default_factory=dict)
    data: Any = None
    text: str = ""
    error: Any = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "HttpOutcome":
        headers: Dict[str, str] = {}
        for raw_key, raw_value in response.headers.raw:
            key = raw_key.decode("latin-1")
            value = raw_value.decode("latin-1")
            headers[key] = f"{headers[key]}, {value}" if key in headers else value

        text = response.text
        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = None

        ok = 200 <= response.status_code < 300
        error = None
        if not ok and isinstance(data, dict):
            error = data.get("error", data.get("errors"))
        return cls(status=response.status_code, ok=ok, headers=headers, data=data, text=text, error=error)
