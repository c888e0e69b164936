"""Capability runtime: load integration sources, cache them, invoke capabilities.

Design overview
---------------

- ``Runtime`` compiles one integration source into a read-only table of
  ``CompiledCapability`` objects and invokes them with an
  ``ExecutionContext``.
- ``RuntimeCache`` keeps compiled runtimes per integration id (FIFO by
  default, LRU optional).
- ``IntegrationService`` is the entry point for the bot-execution layer: it
  fetches sources through an ``IntegrationSourceProvider``, compiles them on a
  cache miss, and reports every invocation as an ``InvocationResult``.

Typical usage
-------------

    service = IntegrationService(InMemorySourceProvider([source]))
    result = await service.invoke("github", "list_repos", ["octocat"], context)
"""

from .cache import RuntimeCache
from .errors import CapabilityNotFoundError, ContextMissingError, IntegrationNotFoundError, classify_error
from .runtime import Runtime
from .schemas import (
    ErrorKind,
    ExecutionContext,
    IntegrationRef,
    IntegrationSource,
    InvocationResult,
    LoadResult,
    SourceTestReport,
    SourceTestStage,
    UserIdentity,
)
from .service import IntegrationService
from .sources import InMemorySourceProvider, IntegrationSourceProvider

__all__ = [
    "CapabilityNotFoundError",
    "ContextMissingError",
    "ErrorKind",
    "ExecutionContext",
    "InMemorySourceProvider",
    "IntegrationNotFoundError",
    "IntegrationRef",
    "IntegrationService",
    "IntegrationSource",
    "IntegrationSourceProvider",
    "InvocationResult",
    "LoadResult",
    "Runtime",
    "RuntimeCache",
    "SourceTestReport",
    "SourceTestStage",
    "UserIdentity",
    "classify_error",
]
