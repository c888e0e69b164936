"""Runtime facade: load an integration source, then invoke its capabilities.

A ``Runtime`` owns a read-only table of compiled capabilities. Loading a
source replaces the table in one step, and only when every capability
compiles; a failed load leaves the previous table in place.

The execution context can be supplied three ways:

- ``set_context(ctx)`` stores it on the instance (single-caller use);
- ``with_context(ctx)`` returns a clone bound to ``ctx`` that shares the
  compiled table and the sandbox;
- ``invoke(..., context=ctx)`` uses ``ctx`` for that call only.

Shared, cached runtimes must use one of the last two so concurrent calls for
different users never read each other's credentials.
"""

from __future__ import annotations

import copy
import logging
import time
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from ..engine import CompileError, CompiledCapability, invoke, synthesize
from ..language import HiveSyntaxError, IntegrationManifest, extract, extract_manifest, transpile
from ..sandbox import HttpSandbox
from .errors import CapabilityNotFoundError, ContextMissingError
from .schemas.domain import ExecutionContext, LoadResult

ContextLike = Union[ExecutionContext, Mapping[str, Any]]


def coerce_context(context: ContextLike) -> ExecutionContext:
    if isinstance(context, ExecutionContext):
        return context
    return ExecutionContext.model_validate(context)


class Runtime:
    """Compiled capabilities of one integration source.

    Args:
        sandbox: HTTP sandbox bound as ``http`` in capability bodies. A default
            ``HttpSandbox`` is created (and owned) when omitted.
        reject_duplicates: Fail the load when two capabilities share a name
            instead of keeping the later one with a warning.
    """

    def __init__(self, sandbox: Optional[HttpSandbox] = None, *, reject_duplicates: bool = False) -> None:
        self._owns_sandbox = sandbox is None
        self._sandbox = sandbox or HttpSandbox()
        self.reject_duplicates = reject_duplicates
        self._programs: Mapping[str, CompiledCapability] = MappingProxyType({})
        self._manifest = IntegrationManifest()
        self._context: Optional[ExecutionContext] = None
        self._logger = logging.getLogger(__name__)

    @property
    def capabilities(self) -> Mapping[str, CompiledCapability]:
        return self._programs

    @property
    def manifest(self) -> IntegrationManifest:
        return self._manifest

    @property
    def context(self) -> Optional[ExecutionContext]:
        return self._context

    @property
    def sandbox(self) -> HttpSandbox:
        return self._sandbox

    def has_capability(self, name: str) -> bool:
        return name in self._programs

    def load_source(self, text: str) -> LoadResult:
        """Compile every capability of ``text`` and install them.

        Raises:
            CompileError: If any capability fails to transpile or synthesize,
                or on a duplicate name when ``reject_duplicates`` is set.
        """
        units = extract(text)
        manifest = extract_manifest(text)
        programs: Dict[str, CompiledCapability] = {}
        warnings: List[str] = []

        for unit in units:
            try:
                host_code = transpile(unit.raw_body, unit.parameters)
            except HiveSyntaxError as exc:
                located = exc.shifted(unit.body_line - 1)
                raise CompileError(unit.name, str(located), line=located.line or None) from exc
            compiled = synthesize(unit.parameters, host_code, name=unit.name)

            if unit.name in programs:
                if self.reject_duplicates:
                    raise CompileError(unit.name, "duplicate capability name", line=unit.line)
                message = (
                    f"Duplicate capability '{unit.name}' on line {unit.line}: "
                    "the later definition replaces the earlier one"
                )
                self._logger.warning("Runtime.load_source: %s", message)
                warnings.append(message)
            programs[unit.name] = compiled

        self._programs = MappingProxyType(programs)
        self._manifest = manifest
        self._logger.info("Runtime.load_source: compiled %d capabilities", len(programs))
        return LoadResult(
            success=True,
            compiled_capability_names=list(programs),
            warnings=warnings,
            manifest=manifest.as_dict(),
        )

    def set_context(self, context: ContextLike) -> None:
        self._context = coerce_context(context)

    def with_context(self, context: ContextLike) -> "Runtime":
        """Return a clone bound to ``context`` sharing programs and sandbox."""
        clone = copy.copy(self)
        clone._owns_sandbox = False
        clone._context = coerce_context(context)
        return clone

    async def invoke(self, name: str, args: Any = None, *, context: Optional[ContextLike] = None) -> Any:
        """Run capability ``name`` with ``args``.

        Raises:
            CapabilityNotFoundError: If no capability is called ``name``.
            ContextMissingError: If no context was given or set.
            ExecutionError: If the capability fails.
        """
        compiled = self._programs.get(name)
        if compiled is None:
            raise CapabilityNotFoundError(name)
        ctx = coerce_context(context) if context is not None else self._context
        if ctx is None:
            raise ContextMissingError(name)

        started = time.perf_counter()
        try:
            return await invoke(compiled, args, ctx, self._sandbox, integration=ctx.integration.slug)
        finally:
            elapsed = (time.perf_counter() - started) * 1000
            self._logger.debug("Runtime.invoke: %s.%s finished in %.1fms", ctx.integration.slug, name, elapsed)

    async def aclose(self) -> None:
        if self._owns_sandbox:
            await self._sandbox.aclose()
