"""HiveLang surface syntax to core form.

Pipeline: ``parse`` -> rewrite passes -> ``codegen.render``. Each pass is a
small ``Rewriter`` subclass that rebuilds only the nodes it changes, so the
passes can be applied (and tested) one at a time and in any order.

The same passes are run again by the execution engine on the core form it
receives; on core-form input every pass is a no-op, which is what makes
``transpile(transpile(x)) == transpile(x)``.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass, replace
from typing import Any, Iterable, Sequence, Tuple

from . import nodes
from .codegen import render
from .errors import HiveSyntaxError
from .parser import parse

HTTP_VERBS = frozenset({"get", "post", "put", "patch", "delete"})

_LOGICAL_SPELLING = {"and": "&&", "or": "||"}


class Rewriter:
    """Rebuild a syntax tree bottom-up.

    Subclasses define ``visit_<NodeClass>`` methods. A visit method that does
    not exist falls back to ``generic_visit`` which rewrites the children.
    """

    def visit(self, node: Any) -> Any:
        method = getattr(self, "visit_" + type(node).__name__, None)
        if method is not None:
            return method(node)
        return self.generic_visit(node)

    def generic_visit(self, node: Any) -> Any:
        if not is_dataclass(node):
            return node
        changes = {}
        for f in fields(node):
            value = getattr(node, f.name)
            new_value = self._visit_value(value)
            if new_value is not value:
                changes[f.name] = new_value
        return replace(node, **changes) if changes else node

    def _visit_value(self, value: Any) -> Any:
        if isinstance(value, tuple):
            items = tuple(self._visit_value(v) for v in value)
            if all(a is b for a, b in zip(items, value)):
                return value
            return items
        if is_dataclass(value):
            return self.visit(value)
        return value


class InterpolationRewriter(Rewriter):
    """``f"Hi {name}"`` -> `` `Hi ${name}` ``."""

    def visit_FormattedString(self, node: nodes.FormattedString) -> nodes.Template:
        visited = self.generic_visit(node)
        return nodes.Template(visited.parts)


class KeywordArgumentRewriter(Rewriter):
    """Fold ``f(a, k = v)`` into ``f(a, {k: v})``."""

    def visit_Call(self, node: nodes.Call) -> nodes.Call:
        node = self.generic_visit(node)
        if not node.keywords:
            return node
        options = nodes.ObjectExpr(tuple(nodes.ObjectEntry(k.key, k.value) for k in node.keywords))
        return nodes.Call(node.func, node.args + (options,), ())


class CredentialRewriter(Rewriter):
    """Route ``user`` through the bound context: ``user.x`` -> ``context.user.x``.

    Nothing is rewritten inside an arrow function that declares its own
    ``user`` parameter.
    """

    def visit_Name(self, node: nodes.Name) -> Any:
        if node.id == "user":
            return nodes.Member(nodes.Name("context"), "user")
        return node

    def visit_Arrow(self, node: nodes.Arrow) -> nodes.Arrow:
        if "user" in node.params:
            return node
        return self.generic_visit(node)

    def visit_Comprehension(self, node: nodes.Comprehension) -> nodes.Comprehension:
        if node.var == "user":
            return replace(node, iterable=self.visit(node.iterable))
        return self.generic_visit(node)


class AwaitRewriter(Rewriter):
    """Wrap every ``http.<verb>(...)`` call in exactly one ``await``."""

    def visit_Await(self, node: nodes.Await) -> nodes.Await:
        if is_http_call(node.value):
            return nodes.Await(self.generic_visit(node.value))
        return self.generic_visit(node)

    def visit_Call(self, node: nodes.Call) -> Any:
        node = self.generic_visit(node)
        if is_http_call(node):
            return nodes.Await(node)
        return node


class LogicalOperatorRewriter(Rewriter):
    """``not``/``and``/``or`` -> ``!``/``&&``/``||``."""

    def visit_Logical(self, node: nodes.Logical) -> nodes.Logical:
        node = self.generic_visit(node)
        return replace(node, op=_LOGICAL_SPELLING.get(node.op, node.op))

    def visit_Unary(self, node: nodes.Unary) -> nodes.Unary:
        node = self.generic_visit(node)
        if node.op == "not":
            return replace(node, op="!")
        return node


class ComprehensionRewriter(Rewriter):
    """``[e for v in xs if c]`` -> ``xs.filter(v => c).map(v => e)``."""

    def visit_Comprehension(self, node: nodes.Comprehension) -> nodes.Call:
        node = self.generic_visit(node)
        source = node.iterable
        if node.condition is not None:
            source = nodes.Call(nodes.Member(source, "filter"), (nodes.Arrow((node.var,), node.condition),))
        return nodes.Call(nodes.Member(source, "map"), (nodes.Arrow((node.var,), node.element),))


def is_http_call(node: Any) -> bool:
    return (
        isinstance(node, nodes.Call)
        and isinstance(node.func, nodes.Member)
        and isinstance(node.func.obj, nodes.Name)
        and node.func.obj.id == "http"
        and node.func.name in HTTP_VERBS
    )


def bound_names(block: nodes.Block) -> set:
    """Names a body binds at function scope: assignment targets and loop variables."""
    found: set = set()

    def walk(stmts: Iterable[Any]) -> None:
        for stmt in stmts:
            if isinstance(stmt, nodes.Assign) and isinstance(stmt.target, nodes.Name):
                found.add(stmt.target.id)
            elif isinstance(stmt, nodes.For):
                found.add(stmt.var)
                walk(stmt.body)
            elif isinstance(stmt, nodes.If):
                walk(stmt.body)
                walk(stmt.orelse)

    walk(block.body)
    return found


def passes_for(parameters: Sequence[str], block: nodes.Block) -> Tuple[Rewriter, ...]:
    """Return the rewrite passes to apply to ``block``."""
    passes: list = [
        InterpolationRewriter(),
        KeywordArgumentRewriter(),
        AwaitRewriter(),
        LogicalOperatorRewriter(),
        ComprehensionRewriter(),
    ]
    if "user" not in parameters:
        passes.insert(2, CredentialRewriter())
    return tuple(passes)


def rewrite(block: nodes.Block, parameters: Sequence[str] = ()) -> nodes.Block:
    """Apply every rewrite pass to ``block``.

    Raises:
        HiveSyntaxError: If the body binds ``user`` itself (assignment or loop
            variable) without declaring it as a parameter.
    """
    if "user" not in parameters and "user" in bound_names(block):
        raise HiveSyntaxError(
            "cannot bind 'user': it names the caller's credentials; declare it as a parameter to shadow it"
        )
    for rewriter in passes_for(parameters, block):
        block = rewriter.visit(block)
    return block


def transpile(body: str, parameters: Sequence[str] = ()) -> str:
    """Translate a capability body to core form.

    Args:
        body: Raw HiveLang text following a ``@capability`` marker.
        parameters: The capability's declared parameter names.

    Returns:
        Core-form host code.

    Raises:
        HiveSyntaxError: If the body is not well-formed HiveLang.
    """
    try:
        return render(rewrite(parse(body), parameters))
    except RecursionError:
        raise HiveSyntaxError("capability body is nested too deeply") from None
