"""Error types raised by the Runtime facade and the integration service.

Purpose:
- Name the lookup failures of ``Runtime.invoke`` and
  ``IntegrationService.invoke`` (unknown capability, unknown integration,
  missing execution context).
- Map any failure raised while loading or invoking a capability to the
  ``ErrorKind`` reported in an ``InvocationResult``.

Usage:
- ``classify_error`` inspects ``ExecutionError.__cause__`` so sandbox and
  author-raised failures keep their specific kind after being wrapped.
"""

from __future__ import annotations

from typing import Optional

from ..engine.errors import (
    CapabilityRaisedError,
    CompileError,
    ExecutionError,
    HiveRuntimeError,
    InvalidArgumentsError,
)
from ..sandbox.errors import SandboxRequestError, SandboxTimeoutError, TransportPolicyError
from .schemas.domain import ErrorKind


class CapabilityNotFoundError(HiveRuntimeError):
    def __init__(self, capability: str) -> None:
        super().__init__(f"Capability not found: {capability}")
        self.capability = capability


class ContextMissingError(HiveRuntimeError):
    def __init__(self, capability: str, detail: Optional[str] = None) -> None:
        message = f"No execution context set before invoking '{capability}'"
        super().__init__(f"{message}: {detail}" if detail else message)
        self.capability = capability


class IntegrationNotFoundError(HiveRuntimeError):
    def __init__(self, integration_id: str) -> None:
        super().__init__(f"Integration not found: {integration_id}")
        self.integration_id = integration_id


def classify_error(exc: BaseException) -> ErrorKind:
    """Return the ``ErrorKind`` describing ``exc``."""
    if isinstance(exc, CompileError):
        return ErrorKind.compile_error
    if isinstance(exc, IntegrationNotFoundError):
        return ErrorKind.integration_not_found
    if isinstance(exc, CapabilityNotFoundError):
        return ErrorKind.not_found
    if isinstance(exc, ContextMissingError):
        return ErrorKind.context_missing
    if isinstance(exc, InvalidArgumentsError):
        return ErrorKind.invalid_arguments
    if isinstance(exc, ExecutionError) and exc.__cause__ is not None:
        return _classify_cause(exc.__cause__)
    return ErrorKind.execution_error


def _classify_cause(cause: BaseException) -> ErrorKind:
    if isinstance(cause, CapabilityRaisedError):
        return ErrorKind.capability_error
    if isinstance(cause, SandboxTimeoutError):
        return ErrorKind.timeout
    if isinstance(cause, TransportPolicyError):
        return ErrorKind.transport_policy
    if isinstance(cause, SandboxRequestError):
        return ErrorKind.network_error
    return ErrorKind.execution_error
