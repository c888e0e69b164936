from __future__ import annotations

"""High-level service the bot-execution layer calls to run integrations.

``IntegrationService`` hides extraction, transpilation, synthesis and caching
behind a single ``invoke`` call.

Workflow
--------

- ``invoke``:

  1. Looks up the compiled ``Runtime`` for the integration in the
     ``RuntimeCache``; on a miss, fetches the source from the
     ``IntegrationSourceProvider`` and compiles it.
  2. Runs the capability with the caller's ``ExecutionContext`` passed per
     call, never through the shared runtime's context slot.
  3. Returns an ``InvocationResult``; failures are reported by ``ErrorKind``
     rather than raised.

- ``test_source``: compile and run a source without caching it, reporting the
  stage that failed (the authoring "test integration" flow).
"""

import logging
import time
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from ..core import monitoring
from ..engine.builtins import to_plain
from ..engine.errors import CompileError
from ..sandbox import HttpSandbox
from .cache import RuntimeCache
from .errors import CapabilityNotFoundError, ContextMissingError, IntegrationNotFoundError, classify_error
from .runtime import ContextLike, Runtime, coerce_context
from .schemas.domain import (
    ErrorKind,
    ExecutionContext,
    InvocationResult,
    LoadResult,
    SourceTestReport,
    SourceTestStage,
)
from .sources import IntegrationSourceProvider


class IntegrationService:
    """Load, cache and invoke integration capabilities.

    Args:
        provider: Where integration sources come from.
        cache: Compiled runtime cache; a default ``RuntimeCache()`` when omitted.
        sandbox: HTTP sandbox shared by every runtime the service builds; a
            default one is created (and owned) when omitted.
        reject_duplicates: Passed to every ``Runtime`` the service builds.
    """

    def __init__(
        self,
        provider: IntegrationSourceProvider,
        *,
        cache: Optional[RuntimeCache[Runtime]] = None,
        sandbox: Optional[HttpSandbox] = None,
        reject_duplicates: bool = False,
    ) -> None:
        self._provider = provider
        self._cache: RuntimeCache[Runtime] = cache if cache is not None else RuntimeCache()
        self._owns_sandbox = sandbox is None
        self._sandbox = sandbox or HttpSandbox()
        self._reject_duplicates = reject_duplicates
        self._logger = logging.getLogger(__name__)

    @property
    def cache(self) -> RuntimeCache[Runtime]:
        return self._cache

    @property
    def provider(self) -> IntegrationSourceProvider:
        return self._provider

    @property
    def sandbox(self) -> HttpSandbox:
        return self._sandbox

    def _new_runtime(self) -> Runtime:
        return Runtime(self._sandbox, reject_duplicates=self._reject_duplicates)

    def load_source(self, text: str) -> LoadResult:
        """Compile ``text`` without caching it.

        Raises:
            CompileError: If any capability fails to compile.
        """
        return self._new_runtime().load_source(text)

    async def _load_integration(self, integration_id: str) -> Runtime:
        source = await self._provider.get(integration_id)
        if source is None:
            raise IntegrationNotFoundError(integration_id)
        runtime = self._new_runtime()
        started = time.perf_counter()
        runtime.load_source(source.source)
        self._logger.info(
            "IntegrationService: compiled integration %s (%d capabilities) in %.1fms",
            integration_id,
            len(runtime.capabilities),
            (time.perf_counter() - started) * 1000,
        )
        return runtime

    async def get_runtime(self, integration_id: str) -> Runtime:
        """Return the compiled runtime for ``integration_id``, compiling on a cache miss.

        Raises:
            IntegrationNotFoundError: If the provider does not know the id.
            CompileError: If the integration source fails to compile.
        """
        return await self._cache.get_or_load(integration_id, lambda: self._load_integration(integration_id))

    @staticmethod
    def _context_for(capability: str, context: Optional[ContextLike]) -> ExecutionContext:
        if context is None:
            raise ContextMissingError(capability)
        try:
            return coerce_context(context)
        except ValidationError as exc:
            raise ContextMissingError(capability, f"invalid context: {exc.error_count()} validation error(s)") from exc

    async def invoke(
        self,
        integration_id: str,
        capability_name: str,
        arguments: Any = None,
        context: Optional[ContextLike] = None,
    ) -> InvocationResult:
        """Run ``capability_name`` of ``integration_id``; never raises for invocation failures."""
        started = time.perf_counter()
        try:
            with monitoring.capability_span(integration_id, capability_name):
                runtime = await self.get_runtime(integration_id)
                if not runtime.has_capability(capability_name):
                    raise CapabilityNotFoundError(capability_name)
                ctx = self._context_for(capability_name, context)
                value = await runtime.invoke(capability_name, arguments, context=ctx)
        except Exception as exc:
            duration_ms = (time.perf_counter() - started) * 1000
            kind = classify_error(exc)
            self._logger.warning(
                "IntegrationService.invoke: %s.%s failed (%s) after %.1fms: %s",
                integration_id,
                capability_name,
                kind.value,
                duration_ms,
                exc,
            )
            monitoring.log_capability_invocation(integration_id, capability_name, False, duration_ms, kind.value)
            return InvocationResult(
                success=False,
                error_kind=kind,
                message=str(exc),
                capability=capability_name,
                duration_ms=duration_ms,
            )

        duration_ms = (time.perf_counter() - started) * 1000
        self._logger.info(
            "IntegrationService.invoke: %s.%s succeeded in %.1fms", integration_id, capability_name, duration_ms
        )
        monitoring.log_capability_invocation(integration_id, capability_name, True, duration_ms)
        return InvocationResult(
            success=True,
            value=to_plain(value),
            capability=capability_name,
            duration_ms=duration_ms,
        )

    async def test_source(
        self,
        source: str,
        capability: Optional[str] = None,
        arguments: Any = None,
        context: Optional[ContextLike] = None,
    ) -> SourceTestReport:
        """Compile ``source`` and optionally run one capability, without caching."""
        started = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - started) * 1000

        runtime = self._new_runtime()
        try:
            loaded = runtime.load_source(source)
        except CompileError as exc:
            return SourceTestReport(
                success=False,
                stage=SourceTestStage.compilation,
                error_kind=ErrorKind.compile_error,
                error=str(exc),
                execution_time_ms=elapsed(),
            )

        if capability is None:
            return SourceTestReport(
                success=True,
                stage=SourceTestStage.complete,
                compiled_capability_names=loaded.compiled_capability_names,
                warnings=loaded.warnings,
                execution_time_ms=elapsed(),
            )

        try:
            if not runtime.has_capability(capability):
                raise CapabilityNotFoundError(capability)
            ctx = self._context_for(capability, context)
            value = await runtime.invoke(capability, arguments, context=ctx)
        except Exception as exc:
            return SourceTestReport(
                success=False,
                stage=SourceTestStage.execution,
                error_kind=classify_error(exc),
                error=str(exc),
                compiled_capability_names=loaded.compiled_capability_names,
                warnings=loaded.warnings,
                execution_time_ms=elapsed(),
            )
        return SourceTestReport(
            success=True,
            stage=SourceTestStage.complete,
            result=to_plain(value),
            compiled_capability_names=loaded.compiled_capability_names,
            warnings=loaded.warnings,
            execution_time_ms=elapsed(),
        )

    async def invalidate(self, integration_id: str) -> bool:
        """Drop the cached runtime of ``integration_id``; True if one was cached."""
        removed = await self._cache.remove(integration_id)
        if removed:
            self._logger.info("IntegrationService: invalidated cached runtime for %s", integration_id)
        return removed

    async def aclose(self) -> None:
        await self._cache.clear()
        if self._owns_sandbox:
            await self._sandbox.aclose()


def build_context(user: Mapping[str, Any], integration: Mapping[str, Any]) -> ExecutionContext:
    return ExecutionContext.model_validate({"user": dict(user), "integration": dict(integration)})
