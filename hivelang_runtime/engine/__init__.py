"""Execution engine for compiled HiveLang capabilities.

``synthesize`` checks core-form host code and produces a
``CompiledCapability``; ``invoke`` binds arguments, the execution context, the
HTTP sandbox and the ``error``/``log``/``warn`` helpers, then runs the body on
the async ``Interpreter``.
"""

from .errors import (
    CapabilityRaisedError,
    CompileError,
    EvaluationError,
    ExecutionError,
    HiveRuntimeError,
    InvalidArgumentsError,
)
from .synthesis import RESERVED_NAMES, CompiledCapability, bind_arguments, invoke, synthesize

__all__ = [
    "CapabilityRaisedError",
    "CompileError",
    "CompiledCapability",
    "EvaluationError",
    "ExecutionError",
    "HiveRuntimeError",
    "InvalidArgumentsError",
    "RESERVED_NAMES",
    "bind_arguments",
    "invoke",
    "synthesize",
]
