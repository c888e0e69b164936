"""Render a HiveLang syntax tree as core-form text.

The output is canonical: one statement per line, four-space indentation,
``if (...) {`` headers, double-quoted strings and the minimum parentheses the
operator precedence requires. Parsing the output and rendering it again gives
the same text.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from . import nodes

_ARROW = 1
_OR = 2
_AND = 3
_NOT = 4
_COMPARE = 5
_ADDITIVE = 6
_TERM = 7
_UNARY = 8
_POSTFIX = 9
_ATOM = 10

_BINARY_PRECEDENCE = {
    "==": _COMPARE,
    "!=": _COMPARE,
    "<": _COMPARE,
    ">": _COMPARE,
    "<=": _COMPARE,
    ">=": _COMPARE,
    "in": _COMPARE,
    "+": _ADDITIVE,
    "-": _ADDITIVE,
    "*": _TERM,
    "/": _TERM,
    "%": _TERM,
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

INDENT = "    "


def precedence(node: Any) -> int:
    if isinstance(node, nodes.Arrow):
        return _ARROW
    if isinstance(node, nodes.Logical):
        return _OR if node.op in ("||", "or") else _AND
    if isinstance(node, nodes.Unary):
        return _NOT if node.op in ("!", "not") else _UNARY
    if isinstance(node, nodes.Binary):
        return _BINARY_PRECEDENCE[node.op]
    if isinstance(node, nodes.Await):
        return _UNARY
    if isinstance(node, (nodes.Member, nodes.Index, nodes.Call, nodes.New)):
        return _POSTFIX
    return _ATOM


def render_literal(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, int):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def _escape_template_text(text: str) -> str:
    text = text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
    return text.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")


def _render_key(entry: nodes.ObjectEntry) -> str:
    if entry.quoted or not _IDENTIFIER.match(entry.key):
        return json.dumps(entry.key, ensure_ascii=False)
    return entry.key


def _wrap(node: Any, minimum: int) -> str:
    text = render_expression(node)
    return f"({text})" if precedence(node) < minimum else text


def _is_plain_callee(node: Any) -> bool:
    while isinstance(node, nodes.Member):
        node = node.obj
    return isinstance(node, nodes.Name)


def render_expression(node: Any) -> str:
    """Render a single expression node."""
    if isinstance(node, nodes.Name):
        return node.id
    if isinstance(node, nodes.Literal):
        return render_literal(node.value)
    if isinstance(node, (nodes.Template, nodes.FormattedString)):
        out: List[str] = []
        for part in node.parts:
            if isinstance(part, str):
                out.append(_escape_template_text(part))
            else:
                out.append("${" + render_expression(part) + "}")
        return "`" + "".join(out) + "`"
    if isinstance(node, nodes.ListExpr):
        return "[" + ", ".join(render_expression(e) for e in node.elements) + "]"
    if isinstance(node, nodes.ObjectExpr):
        if not node.entries:
            return "{}"
        inner = ", ".join(f"{_render_key(e)}: {render_expression(e.value)}" for e in node.entries)
        return "{" + inner + "}"
    if isinstance(node, nodes.Comprehension):
        text = f"[{render_expression(node.element)} for {node.var} in {_wrap(node.iterable, _OR)}"
        if node.condition is not None:
            text += f" if {_wrap(node.condition, _OR)}"
        return text + "]"
    if isinstance(node, nodes.Member):
        return f"{_wrap(node.obj, _POSTFIX)}.{node.name}"
    if isinstance(node, nodes.Index):
        return f"{_wrap(node.obj, _POSTFIX)}[{render_expression(node.key)}]"
    if isinstance(node, nodes.Call):
        args = [render_expression(a) for a in node.args]
        args += [f"{k.key}: {render_expression(k.value)}" for k in node.keywords]
        return f"{_wrap(node.func, _POSTFIX)}({', '.join(args)})"
    if isinstance(node, nodes.New):
        func = render_expression(node.func)
        if not _is_plain_callee(node.func):
            func = f"({func})"
        return f"new {func}({', '.join(render_expression(a) for a in node.args)})"
    if isinstance(node, nodes.Await):
        return f"await {_wrap(node.value, _UNARY)}"
    if isinstance(node, nodes.Unary):
        if node.op in ("!", "not"):
            operand = _wrap(node.operand, _UNARY)
            return f"not {operand}" if node.op == "not" else f"!{operand}"
        return f"-{_wrap(node.operand, _UNARY)}"
    if isinstance(node, nodes.Binary):
        level = _BINARY_PRECEDENCE[node.op]
        return f"{_wrap(node.left, level)} {node.op} {_wrap(node.right, level + 1)}"
    if isinstance(node, nodes.Logical):
        level = precedence(node)
        return f"{_wrap(node.left, level)} {node.op} {_wrap(node.right, level + 1)}"
    if isinstance(node, nodes.Arrow):
        params = node.params[0] if len(node.params) == 1 else f"({', '.join(node.params)})"
        return f"{params} => {render_expression(node.body)}"
    raise TypeError(f"cannot render {type(node).__name__}")


def _render_body(body: Any, depth: int) -> List[str]:
    lines: List[str] = []
    for stmt in body:
        lines.extend(_render_statement(stmt, depth))
    return lines


def _render_statement(node: Any, depth: int) -> List[str]:
    pad = INDENT * depth
    if isinstance(node, nodes.Assign):
        return [f"{pad}{render_expression(node.target)} {node.op} {render_expression(node.value)}"]
    if isinstance(node, nodes.ExprStmt):
        return [pad + render_expression(node.value)]
    if isinstance(node, nodes.Return):
        if node.value is None:
            return [f"{pad}return"]
        return [f"{pad}return {render_expression(node.value)}"]
    if isinstance(node, nodes.For):
        lines = [f"{pad}for {node.var} in {render_expression(node.iterable)} {{"]
        lines += _render_body(node.body, depth + 1)
        lines.append(pad + "}")
        return lines
    if isinstance(node, nodes.If):
        lines = [f"{pad}if ({render_expression(node.test)}) {{"]
        lines += _render_body(node.body, depth + 1)
        current = node
        while True:
            orelse = current.orelse
            if not orelse:
                lines.append(pad + "}")
                break
            if len(orelse) == 1 and isinstance(orelse[0], nodes.If):
                current = orelse[0]
                lines.append(f"{pad}}} else if ({render_expression(current.test)}) {{")
                lines += _render_body(current.body, depth + 1)
                continue
            lines.append(pad + "} else {")
            lines += _render_body(orelse, depth + 1)
            lines.append(pad + "}")
            break
        return lines
    raise TypeError(f"cannot render {type(node).__name__}")


def render(block: nodes.Block) -> str:
    """Render a whole capability body."""
    return "\n".join(_render_body(block.body, 0))
