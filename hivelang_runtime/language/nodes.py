"""HiveLang syntax tree.

Every node is a frozen dataclass. Expressions and statements are plain tagged
variants; the parser builds them, the rewrite passes in ``transpiler`` replace
them and ``codegen`` renders them back to text.

Nodes carry no source positions so that parsing the rendered core form yields
an equal tree, which is what keeps transpilation idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Tuple, Union

# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Name:
    id: str


@dataclass(frozen=True)
class Literal:
    """``str``, ``int``, ``float``, ``bool`` or ``None`` constant."""

    value: Any


@dataclass(frozen=True)
class FormattedString:
    """``f"..."`` before rewriting. ``parts`` holds ``str`` and expression items."""

    parts: Tuple[Any, ...]


@dataclass(frozen=True)
class Template:
    """Host template string: literal text interleaved with expressions."""

    parts: Tuple[Any, ...]


@dataclass(frozen=True)
class ListExpr:
    elements: Tuple[Any, ...]


@dataclass(frozen=True)
class ObjectEntry:
    key: str
    value: Any
    quoted: bool = False


@dataclass(frozen=True)
class ObjectExpr:
    entries: Tuple[ObjectEntry, ...]


@dataclass(frozen=True)
class Comprehension:
    element: Any
    var: str
    iterable: Any
    condition: Any = None


@dataclass(frozen=True)
class Member:
    obj: Any
    name: str


@dataclass(frozen=True)
class Index:
    obj: Any
    key: Any


@dataclass(frozen=True)
class Call:
    func: Any
    args: Tuple[Any, ...] = ()
    keywords: Tuple[ObjectEntry, ...] = ()


@dataclass(frozen=True)
class New:
    func: Any
    args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class Await:
    value: Any


@dataclass(frozen=True)
class Unary:
    """``op`` is ``"!"``, ``"not"`` or ``"-"``."""

    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    """Arithmetic and comparison. ``op`` uses the host spelling (``==``, ``in``...)."""

    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Logical:
    """``op`` is ``"&&"``, ``"||"`` or the surface spelling ``"and"``/``"or"``."""

    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Arrow:
    params: Tuple[str, ...]
    body: Any


Expr = Union[
    Name, Literal, FormattedString, Template, ListExpr, ObjectExpr, Comprehension,
    Member, Index, Call, New, Await, Unary, Binary, Logical, Arrow,
]

# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Assign:
    """``op`` is ``"="``, ``"+="`` or ``"-="``."""

    target: Any
    value: Any
    op: str = "="


@dataclass(frozen=True)
class ExprStmt:
    value: Any


@dataclass(frozen=True)
class Return:
    value: Any = None


@dataclass(frozen=True)
class If:
    test: Any
    body: Tuple[Any, ...]
    orelse: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class For:
    var: str
    iterable: Any
    body: Tuple[Any, ...]


@dataclass(frozen=True)
class Block:
    """A capability body: the root node handed to the interpreter."""

    body: Tuple[Any, ...] = field(default_factory=tuple)


Stmt = Union[Assign, ExprStmt, Return, If, For]
