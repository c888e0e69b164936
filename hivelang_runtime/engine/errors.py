"""Error types specific to capability synthesis and execution.

Purpose:
- ``CompileError`` reports a capability that cannot be turned into an
  executable unit; it is raised at load time, never at first invocation.
- ``ExecutionError`` wraps every failure that happens while a capability
  runs. The underlying exception is kept as ``__cause__`` so callers can
  classify it (sandbox timeout, transport policy, author-raised error...).

Usage:
- Catch ``CompileError`` around ``Runtime.load_source``.
- Catch ``ExecutionError`` around ``Runtime.invoke`` and inspect
  ``__cause__`` for the specific failure.
"""

from __future__ import annotations

from typing import Optional


class HiveRuntimeError(Exception):
    pass


class CompileError(HiveRuntimeError):
    """Raised when a capability fails to transpile or synthesize.

    Args:
        capability: Name of the offending capability.
        message: Description of the failure.
        line: Optional 1-based source line the failure points at.
    """

    def __init__(self, capability: str, message: str, *, line: Optional[int] = None) -> None:
        super().__init__(f"Failed to compile capability '{capability}': {message}")
        self.capability = capability
        self.message = message
        self.line = line


class ExecutionError(HiveRuntimeError):
    """Raised when a capability fails at run time.

    Args:
        capability: Name of the capability that was running.
        message: Description of the failure.
    """

    def __init__(self, capability: str, message: str) -> None:
        super().__init__(f"Error executing capability '{capability}': {message}")
        self.capability = capability
        self.message = message


class EvaluationError(HiveRuntimeError):
    """A HiveLang-level fault: bad member access, calling a non-function..."""


class CapabilityRaisedError(HiveRuntimeError):
    """Raised by the ``error(message)`` helper available to capability bodies."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentsError(ExecutionError):
    """Raised when invocation arguments cannot be bound to the declared parameters."""
