"""Async tree-walking evaluator for core-form capability bodies.

The interpreter never hands control to Python's ``eval``/``exec``. Every
value a body can touch is either produced by the interpreter itself, taken
from the bound arguments and context, or one of the explicitly exposed
runtime objects (the HTTP sandbox, builtins). Member access follows the
rules in ``get_member``; anything not listed there is unreachable.
"""

from __future__ import annotations

import inspect
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from ..language import nodes
from .builtins import (
    BUILTINS,
    Builtin,
    HiveCallable,
    Namespace,
    bind_method,
    call_value,
    to_text,
    type_name,
)
from .errors import EvaluationError


class _ReturnSignal(Exception):
    def __init__(self, value: Any) -> None:
        super().__init__()
        self.value = value


class Scope:
    """Variable bindings; arrow functions chain a child scope to their parent."""

    def __init__(self, values: Optional[Dict[str, Any]] = None, parent: Optional["Scope"] = None) -> None:
        self._values: Dict[str, Any] = values if values is not None else {}
        self._parent = parent

    def lookup(self, name: str) -> Any:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope._values:
                return scope._values[name]
            scope = scope._parent
        if name in BUILTINS:
            return BUILTINS[name]
        raise EvaluationError(f"{name} is not defined")

    def assign(self, name: str, value: Any) -> None:
        self._values[name] = value

    def child(self, values: Dict[str, Any]) -> "Scope":
        return Scope(values, self)


class Closure(HiveCallable):
    """An arrow function value."""

    name = "<arrow>"

    def __init__(self, interpreter: "Interpreter", node: nodes.Arrow, scope: Scope) -> None:
        self._interpreter = interpreter
        self._node = node
        self._scope = scope

    async def call(self, args: Sequence[Any]) -> Any:
        params = self._node.params
        bound = {p: (args[i] if i < len(args) else None) for i, p in enumerate(params)}
        return await self._interpreter.evaluate(self._node.body, self._scope.child(bound))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_member(obj: Any, name: str) -> Any:
    """Resolve ``obj.name`` under the sandbox rules."""
    if name.startswith("_"):
        raise EvaluationError(f"access to '{name}' is not allowed")
    if obj is None:
        raise EvaluationError(f"cannot read property '{name}' of null")
    if isinstance(obj, dict):
        if name in obj:
            return obj[name]
        method = bind_method(obj, name)
        return method
    if isinstance(obj, (str, list)):
        if name == "length":
            return len(obj)
        method = bind_method(obj, name)
        if method is None:
            raise EvaluationError(f"{type_name(obj)} has no member '{name}'")
        return method
    if is_number(obj):
        method = bind_method(obj, name)
        if method is None:
            raise EvaluationError(f"number has no member '{name}'")
        return method
    if isinstance(obj, BaseModel):
        if name in type(obj).model_fields:
            return getattr(obj, name)
        raise EvaluationError(f"{type(obj).__name__} has no member '{name}'")
    exposed = getattr(obj, "exposed_members", None)
    if exposed is not None and name in exposed:
        if hasattr(obj, "member"):
            return obj.member(name)
        value = getattr(obj, name)
        if callable(value):
            return Builtin(value, name)
        return value
    raise EvaluationError(f"{type_name(obj)} has no member '{name}'")


def get_index(obj: Any, key: Any) -> Any:
    if obj is None:
        raise EvaluationError(f"cannot read index {to_text(key)} of null")
    if isinstance(obj, dict):
        return obj.get(key if isinstance(key, str) else to_text(key))
    if isinstance(obj, (list, str)):
        if isinstance(key, str):
            return get_member(obj, key)
        if not is_number(key) or int(key) != key:
            raise EvaluationError(f"{type_name(obj)} index must be an integer, got {type_name(key)}")
        position = int(key)
        if -len(obj) <= position < len(obj):
            return obj[position]
        return None
    if isinstance(key, str):
        return get_member(obj, key)
    raise EvaluationError(f"cannot index {type_name(obj)}")


def set_index(obj: Any, key: Any, value: Any) -> None:
    if isinstance(obj, dict):
        obj[key if isinstance(key, str) else to_text(key)] = value
        return
    if isinstance(obj, list):
        if not is_number(key) or int(key) != key:
            raise EvaluationError(f"list index must be an integer, got {type_name(key)}")
        position = int(key)
        if position == len(obj):
            obj.append(value)
        elif -len(obj) <= position < len(obj):
            obj[position] = value
        else:
            raise EvaluationError(f"list index {position} out of range")
        return
    raise EvaluationError(f"cannot assign into {type_name(obj)}")


def add(left: Any, right: Any) -> Any:
    if isinstance(left, str) or isinstance(right, str):
        return to_text(left) + to_text(right)
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left + right
    raise EvaluationError(f"unsupported operands for +: {type_name(left)} and {type_name(right)}")


def arithmetic(op: str, left: Any, right: Any) -> Any:
    if op == "+":
        return add(left, right)
    if not (isinstance(left, (int, float)) and isinstance(right, (int, float))):
        raise EvaluationError(f"unsupported operands for {op}: {type_name(left)} and {type_name(right)}")
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise EvaluationError("division by zero")
    if op == "/":
        return left / right
    return left % right


def compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    if op == "in":
        if isinstance(right, dict):
            return left in right
        if isinstance(right, list):
            return left in right
        if isinstance(right, str):
            return to_text(left) in right
        raise EvaluationError(f"'in' needs a list, string or object, got {type_name(right)}")
    try:
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        return left >= right
    except TypeError as exc:
        raise EvaluationError(f"cannot compare {type_name(left)} {op} {type_name(right)}") from exc


class Interpreter:
    """Run one capability body.

    Args:
        capability: Name used in log lines.
    """

    def __init__(self, capability: str) -> None:
        self.capability = capability

    async def run(self, block: nodes.Block, env: Dict[str, Any]) -> Any:
        scope = Scope(dict(env))
        try:
            await self._execute_body(block.body, scope)
        except _ReturnSignal as signal:
            return signal.value
        return None

    # -- statements --------------------------------------------------------

    async def _execute_body(self, body: Sequence[Any], scope: Scope) -> None:
        for stmt in body:
            await self._execute(stmt, scope)

    async def _execute(self, node: Any, scope: Scope) -> None:
        if isinstance(node, nodes.ExprStmt):
            await self.evaluate(node.value, scope)
        elif isinstance(node, nodes.Assign):
            await self._assign(node, scope)
        elif isinstance(node, nodes.Return):
            value = None if node.value is None else await self.evaluate(node.value, scope)
            raise _ReturnSignal(value)
        elif isinstance(node, nodes.If):
            if await self.evaluate(node.test, scope):
                await self._execute_body(node.body, scope)
            else:
                await self._execute_body(node.orelse, scope)
        elif isinstance(node, nodes.For):
            for item in self._iterate(await self.evaluate(node.iterable, scope)):
                scope.assign(node.var, item)
                await self._execute_body(node.body, scope)
        else:
            raise EvaluationError(f"unsupported statement {type(node).__name__}")

    def _iterate(self, value: Any) -> List[Any]:
        if isinstance(value, list):
            return list(value)
        if isinstance(value, dict):
            return list(value.keys())
        if isinstance(value, str):
            return list(value)
        raise EvaluationError(f"{type_name(value)} is not iterable")

    async def _assign(self, node: nodes.Assign, scope: Scope) -> None:
        value = await self.evaluate(node.value, scope)
        target = node.target
        if node.op != "=":
            current = await self.evaluate(target, scope)
            value = arithmetic(node.op[0], current, value)
        if isinstance(target, nodes.Name):
            scope.assign(target.id, value)
        elif isinstance(target, nodes.Member):
            obj = await self.evaluate(target.obj, scope)
            if target.name.startswith("_"):
                raise EvaluationError(f"access to '{target.name}' is not allowed")
            if not isinstance(obj, dict):
                raise EvaluationError(f"cannot set property '{target.name}' of {type_name(obj)}")
            obj[target.name] = value
        elif isinstance(target, nodes.Index):
            obj = await self.evaluate(target.obj, scope)
            set_index(obj, await self.evaluate(target.key, scope), value)
        else:
            raise EvaluationError("invalid assignment target")

    # -- expressions -------------------------------------------------------

    async def evaluate(self, node: Any, scope: Scope) -> Any:
        if isinstance(node, nodes.Literal):
            return node.value
        if isinstance(node, nodes.Name):
            return scope.lookup(node.id)
        if isinstance(node, nodes.Member):
            return get_member(await self.evaluate(node.obj, scope), node.name)
        if isinstance(node, nodes.Call):
            return await self._call(node, scope)
        if isinstance(node, nodes.Await):
            value = await self.evaluate(node.value, scope)
            if inspect.isawaitable(value):
                value = await value
            return value
        if isinstance(node, (nodes.Template, nodes.FormattedString)):
            out: List[str] = []
            for part in node.parts:
                out.append(part if isinstance(part, str) else to_text(await self.evaluate(part, scope)))
            return "".join(out)
        if isinstance(node, nodes.ObjectExpr):
            return {e.key: await self.evaluate(e.value, scope) for e in node.entries}
        if isinstance(node, nodes.ListExpr):
            return [await self.evaluate(e, scope) for e in node.elements]
        if isinstance(node, nodes.Index):
            obj = await self.evaluate(node.obj, scope)
            return get_index(obj, await self.evaluate(node.key, scope))
        if isinstance(node, nodes.Logical):
            left = await self.evaluate(node.left, scope)
            if node.op in ("&&", "and"):
                return await self.evaluate(node.right, scope) if left else left
            return left if left else await self.evaluate(node.right, scope)
        if isinstance(node, nodes.Unary):
            operand = await self.evaluate(node.operand, scope)
            if node.op in ("!", "not"):
                return not operand
            if not isinstance(operand, (int, float)):
                raise EvaluationError(f"bad operand for unary -: {type_name(operand)}")
            return -operand
        if isinstance(node, nodes.Binary):
            left = await self.evaluate(node.left, scope)
            right = await self.evaluate(node.right, scope)
            if node.op in ("+", "-", "*", "/", "%"):
                return arithmetic(node.op, left, right)
            return compare(node.op, left, right)
        if isinstance(node, nodes.Arrow):
            return Closure(self, node, scope)
        if isinstance(node, nodes.New):
            return await self._new(node, scope)
        if isinstance(node, nodes.Comprehension):
            return await self._comprehension(node, scope)
        raise EvaluationError(f"unsupported expression {type(node).__name__}")

    async def _call(self, node: nodes.Call, scope: Scope) -> Any:
        fn = await self.evaluate(node.func, scope)
        if fn is None and isinstance(node.func, nodes.Member):
            raise EvaluationError(f"{node.func.name} is not a function")
        args = [await self.evaluate(a, scope) for a in node.args]
        if node.keywords:
            args.append({k.key: await self.evaluate(k.value, scope) for k in node.keywords})
        result = await call_value(fn, args)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _new(self, node: nodes.New, scope: Scope) -> Any:
        fn = await self.evaluate(node.func, scope)
        if not isinstance(fn, Namespace) or fn.construct is None:
            raise EvaluationError(f"{type_name(fn)} is not a constructor")
        args = [await self.evaluate(a, scope) for a in node.args]
        return await fn.construct.call(args)

    async def _comprehension(self, node: nodes.Comprehension, scope: Scope) -> List[Any]:
        result: List[Any] = []
        for item in self._iterate(await self.evaluate(node.iterable, scope)):
            inner = scope.child({node.var: item})
            if node.condition is not None and not await self.evaluate(node.condition, inner):
                continue
            result.append(await self.evaluate(node.element, inner))
        return result
