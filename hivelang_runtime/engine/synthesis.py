"""Turn core-form host code into executable capabilities.

``synthesize`` parses the host code once, checks it statically and returns a
``CompiledCapability``. The compiled unit is immutable and holds no per-call
state: the execution context, the HTTP sandbox and the diagnostic helpers are
passed in on every call, so one compiled capability can serve concurrent
invocations for different users.
"""

from __future__ import annotations

import keyword
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import BaseModel

from ..language import nodes
from ..language.errors import HiveSyntaxError
from ..language.parser import KEYWORDS, parse
from ..language.transpiler import bound_names, rewrite
from .builtins import BUILTIN_NAMES, Builtin, to_text
from .errors import CapabilityRaisedError, CompileError, ExecutionError, InvalidArgumentsError
from .interpreter import Interpreter

logger = logging.getLogger(__name__)
capability_logger = logging.getLogger("hivelang_runtime.capability")

RESERVED_NAMES: Tuple[str, ...] = ("context", "http", "error", "log", "warn")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class CompiledCapability:
    """An executable capability.

    Calling it mirrors the synthesized signature
    ``(arg_1, ..., arg_n, context, http, error, log, warn)``.
    """

    name: str
    parameters: Tuple[str, ...]
    host_code: str
    tree: nodes.Block

    async def __call__(self, *args: Any, context: Any, http: Any, error: Any, log: Any, warn: Any) -> Any:
        if len(args) > len(self.parameters):
            raise InvalidArgumentsError(
                self.name, f"expected at most {len(self.parameters)} argument(s), got {len(args)}"
            )
        env: Dict[str, Any] = {p: (args[i] if i < len(args) else None) for i, p in enumerate(self.parameters)}
        env.update(context=context, http=http, error=error, log=log, warn=warn)
        return await Interpreter(self.name).run(self.tree, env)


# ---------------------------------------------------------------------------
# Static checks
# ---------------------------------------------------------------------------


def _check_parameters(name: str, parameters: Sequence[str]) -> None:
    seen: Set[str] = set()
    for param in parameters:
        if not _IDENTIFIER.match(param) or keyword.iskeyword(param) or param in KEYWORDS:
            raise CompileError(name, f"invalid parameter name {param!r}")
        if param in RESERVED_NAMES:
            raise CompileError(name, f"parameter {param!r} shadows a reserved name")
        if param in seen:
            raise CompileError(name, f"duplicate parameter {param!r}")
        seen.add(param)


class _NameChecker:
    """Verify every referenced name resolves and reserved names stay read-only."""

    def __init__(self, capability: str, known: Set[str]) -> None:
        self._capability = capability
        self._known = known

    def fail(self, message: str) -> CompileError:
        return CompileError(self._capability, message)

    def statements(self, body: Sequence[Any]) -> None:
        for stmt in body:
            if isinstance(stmt, nodes.Assign):
                if isinstance(stmt.target, nodes.Name):
                    if stmt.target.id in RESERVED_NAMES:
                        raise self.fail(f"cannot assign to reserved name {stmt.target.id!r}")
                    if stmt.op != "=":
                        self.expression(stmt.target, frozenset())
                else:
                    self.expression(stmt.target, frozenset())
                self.expression(stmt.value, frozenset())
            elif isinstance(stmt, (nodes.ExprStmt, nodes.Return)):
                if stmt.value is not None:
                    self.expression(stmt.value, frozenset())
            elif isinstance(stmt, nodes.If):
                self.expression(stmt.test, frozenset())
                self.statements(stmt.body)
                self.statements(stmt.orelse)
            elif isinstance(stmt, nodes.For):
                if stmt.var in RESERVED_NAMES:
                    raise self.fail(f"cannot use reserved name {stmt.var!r} as a loop variable")
                self.expression(stmt.iterable, frozenset())
                self.statements(stmt.body)

    def expression(self, node: Any, local: frozenset) -> None:
        if isinstance(node, nodes.Name):
            if node.id not in local and node.id not in self._known:
                raise self.fail(f"'{node.id}' is not defined")
            return
        if isinstance(node, nodes.Arrow):
            for param in node.params:
                if param in RESERVED_NAMES:
                    raise self.fail(f"arrow parameter {param!r} shadows a reserved name")
            self.expression(node.body, local | frozenset(node.params))
            return
        if isinstance(node, nodes.Comprehension):
            self.expression(node.iterable, local)
            inner = local | {node.var}
            self.expression(node.element, inner)
            if node.condition is not None:
                self.expression(node.condition, inner)
            return
        if isinstance(node, nodes.Member):
            if node.name.startswith("_"):
                raise self.fail(f"access to '{node.name}' is not allowed")
            self.expression(node.obj, local)
            return
        if isinstance(node, nodes.ObjectExpr):
            for entry in node.entries:
                self.expression(entry.value, local)
            return
        if isinstance(node, nodes.Call):
            self.expression(node.func, local)
            for arg in node.args:
                self.expression(arg, local)
            for kw in node.keywords:
                self.expression(kw.value, local)
            return
        if isinstance(node, (nodes.Template, nodes.FormattedString)):
            for part in node.parts:
                if not isinstance(part, str):
                    self.expression(part, local)
            return
        for child in _children(node):
            self.expression(child, local)


def _children(node: Any) -> List[Any]:
    if isinstance(node, nodes.ListExpr):
        return list(node.elements)
    if isinstance(node, nodes.Index):
        return [node.obj, node.key]
    if isinstance(node, nodes.New):
        return [node.func, *node.args]
    if isinstance(node, nodes.Await):
        return [node.value]
    if isinstance(node, nodes.Unary):
        return [node.operand]
    if isinstance(node, (nodes.Binary, nodes.Logical)):
        return [node.left, node.right]
    return []


def synthesize(parameters: Sequence[str], host_code: str, *, name: str = "<anonymous>") -> CompiledCapability:
    """Compile core-form ``host_code`` into a ``CompiledCapability``.

    Raises:
        CompileError: If the code does not parse, a parameter is invalid, a
            reserved name is assigned, or a name cannot be resolved.
    """
    params = tuple(parameters)
    _check_parameters(name, params)
    try:
        tree = rewrite(parse(host_code), params)
    except HiveSyntaxError as exc:
        raise CompileError(name, str(exc), line=exc.line or None) from exc
    except RecursionError:
        raise CompileError(name, "capability body is nested too deeply") from None

    try:
        known = set(params) | bound_names(tree) | set(RESERVED_NAMES) | set(BUILTIN_NAMES)
        _NameChecker(name, known).statements(tree.body)
    except RecursionError:
        raise CompileError(name, "capability body is nested too deeply") from None
    logger.debug("synthesize: compiled capability %s(%s)", name, ", ".join(params))
    return CompiledCapability(name=name, parameters=params, host_code=host_code, tree=tree)


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


def bind_arguments(compiled: CompiledCapability, args: Any) -> List[Any]:
    """Map invocation arguments onto the declared parameters.

    A sequence binds positionally, a mapping binds by parameter name (unknown
    keys are ignored), ``None`` binds nothing. Missing parameters bind ``null``.
    """
    if args is None:
        return []
    if isinstance(args, Mapping):
        unknown = [k for k in args if k not in compiled.parameters]
        if unknown:
            logger.info("bind_arguments: ignoring unknown argument(s) %s for %s", sorted(unknown), compiled.name)
        return [args.get(p) for p in compiled.parameters]
    if isinstance(args, (list, tuple)):
        if len(args) > len(compiled.parameters):
            raise InvalidArgumentsError(
                compiled.name,
                f"expected at most {len(compiled.parameters)} argument(s), got {len(args)}",
            )
        return list(args)
    raise InvalidArgumentsError(compiled.name, f"arguments must be a list or an object, got {type(args).__name__}")


def make_helpers(capability: str, integration: Optional[str] = None) -> Dict[str, Builtin]:
    """Build the ``error``/``log``/``warn`` helpers for one call."""
    label = f"{integration}.{capability}" if integration else capability

    def error(message: Any = "capability error") -> None:
        raise CapabilityRaisedError(to_text(message))

    def log(*values: Any) -> None:
        capability_logger.info("[HiveLang] %s: %s", label, " ".join(to_text(v) for v in values))

    def warn(*values: Any) -> None:
        capability_logger.warning("[HiveLang] %s: %s", label, " ".join(to_text(v) for v in values))

    return {"error": Builtin(error, "error"), "log": Builtin(log, "log"), "warn": Builtin(warn, "warn")}


def context_payload(context: Any) -> Any:
    """Give the body its own copy of the context so it cannot leak across calls."""
    if context is None:
        return None
    if isinstance(context, BaseModel):
        return context.model_dump()
    if isinstance(context, Mapping):
        return {k: context_payload(v) if isinstance(v, Mapping) else v for k, v in context.items()}
    raise TypeError(f"unsupported context type {type(context).__name__}")


async def invoke(
    compiled: CompiledCapability,
    positional_args: Any,
    context: Any,
    sandbox: Any,
    *,
    integration: Optional[str] = None,
) -> Any:
    """Run ``compiled`` with the given arguments, context and sandbox.

    Raises:
        ExecutionError: For any failure; the original exception is kept as
            ``__cause__``.
    """
    try:
        args = bind_arguments(compiled, positional_args)
        helpers = make_helpers(compiled.name, integration)
        return await compiled(*args, context=context_payload(context), http=sandbox, **helpers)
    except ExecutionError:
        raise
    except Exception as exc:
        message = str(exc) or type(exc).__name__
        raise ExecutionError(compiled.name, message) from exc
