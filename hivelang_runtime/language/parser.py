"""Recursive-descent parser for HiveLang.

The grammar accepts both the Python-flavoured surface syntax integration
authors write and the core form produced by ``codegen``, so a transpiled body
can be parsed again by the execution engine.

Precedence, lowest first::

    arrow      x => e, (a, b) => e
    or         or, ||
    and        and, &&
    not        not, !
    compare    == != === !== < > <= >= in
    additive   + -
    term       * / %
    unary      -x, await x
    postfix    a.b, a[b], a(b), new A(b)
    primary    literals, names, (e), [..], {..}, f"..", `..`

A ``{`` after an ``if``/``elif``/``else``/``for`` header opens a block; any
other ``{`` opens an object literal.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from . import nodes
from .errors import HiveSyntaxError
from .lexer import (
    EOF,
    FSTRING,
    NAME,
    NEWLINE,
    NUMBER,
    STRING,
    TEMPLATE,
    Lexer,
    Token,
    split_formatted,
    split_template,
)

KEYWORDS = frozenset(
    {
        "if", "elif", "else", "for", "in", "return", "not", "and", "or",
        "true", "false", "True", "False", "null", "None", "undefined",
        "await", "new",
    }
)

_CONSTANTS = {
    "true": True,
    "True": True,
    "false": False,
    "False": False,
    "null": None,
    "None": None,
    "undefined": None,
}

_COMPARE_OPS = {"==": "==", "===": "==", "!=": "!=", "!==": "!=", "<": "<", ">": ">", "<=": "<=", ">=": ">="}

# Brackets, blocks and prefix operators each count one level
MAX_NESTING_DEPTH = 32


class Parser:
    """Build a ``nodes.Block`` from HiveLang text.

    Examples:
        >>> Parser("return msg").parse()
        Block(body=(Return(value=Name(id='msg')),))
    """

    def __init__(self, text: str, *, line: int = 1, column: int = 1, depth: int = 0) -> None:
        self._tokens: List[Token] = Lexer(text, line=line, column=column).tokenize()
        self._pos = 0
        self._depth = depth

    # -- entry points ------------------------------------------------------

    def parse(self) -> nodes.Block:
        body = self._statements(until_brace=False)
        self._expect_kind(EOF)
        return nodes.Block(body=body)

    def parse_expression(self) -> Any:
        self._skip_newlines()
        expr = self._expression()
        self._skip_newlines()
        self._expect_kind(EOF)
        return expr

    # -- token plumbing ----------------------------------------------------

    @property
    def _tok(self) -> Token:
        return self._tokens[self._pos]

    def _peek(self, offset: int = 1) -> Token:
        idx = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[idx]

    def _next(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.kind != EOF:
            self._pos += 1
        return tok

    def _error(self, message: str, tok: Optional[Token] = None) -> HiveSyntaxError:
        tok = tok or self._tok
        return HiveSyntaxError(message, line=tok.line, column=tok.column)

    def _describe(self, tok: Token) -> str:
        if tok.kind == EOF:
            return "end of input"
        if tok.kind == NEWLINE:
            return "end of line"
        return repr(tok.value)

    def _expect_op(self, op: str) -> Token:
        if not self._tok.is_op(op):
            raise self._error(f"expected {op!r} but found {self._describe(self._tok)}")
        return self._next()

    def _expect_kind(self, kind: str) -> Token:
        if self._tok.kind != kind:
            raise self._error(f"unexpected {self._describe(self._tok)}")
        return self._next()

    def _expect_identifier(self, what: str) -> str:
        tok = self._tok
        if tok.kind != NAME or tok.value in KEYWORDS:
            raise self._error(f"expected {what} but found {self._describe(tok)}")
        self._next()
        return str(tok.value)

    def _nested(self, parse: Callable[[], Any]) -> Any:
        if self._depth >= MAX_NESTING_DEPTH:
            raise self._error(f"nesting deeper than {MAX_NESTING_DEPTH} levels")
        self._depth += 1
        try:
            return parse()
        finally:
            self._depth -= 1

    def _skip_newlines(self) -> None:
        while self._tok.kind == NEWLINE:
            self._next()

    def _skip_separators(self) -> None:
        while self._tok.kind == NEWLINE or self._tok.is_op(";"):
            self._next()

    # -- statements --------------------------------------------------------

    def _statements(self, *, until_brace: bool) -> Tuple[Any, ...]:
        body: List[Any] = []
        self._skip_separators()
        while True:
            tok = self._tok
            if tok.kind == EOF:
                if until_brace:
                    raise self._error("expected '}' to close block")
                break
            if tok.is_op("}"):
                if until_brace:
                    break
                raise self._error("unmatched '}'")
            stmt = self._statement()
            body.append(stmt)
            # a closing brace already ends compound statements
            if isinstance(stmt, (nodes.If, nodes.For)):
                self._skip_separators()
                continue
            if not (self._tok.kind in (NEWLINE, EOF) or self._tok.is_op(";", "}")):
                raise self._error(f"unexpected {self._describe(self._tok)} after statement")
            self._skip_separators()
        return tuple(body)

    def _block(self) -> Tuple[Any, ...]:
        self._skip_newlines()
        self._expect_op("{")
        body = self._nested(lambda: self._statements(until_brace=True))
        self._expect_op("}")
        return body

    def _statement(self) -> Any:
        tok = self._tok
        if tok.is_name("if"):
            self._next()
            return self._if_rest()
        if tok.is_name("elif") or tok.is_name("else"):
            raise self._error(f"{tok.value!r} without a matching 'if'")
        if tok.is_name("for"):
            return self._for()
        if tok.is_name("return"):
            self._next()
            if self._tok.kind in (NEWLINE, EOF) or self._tok.is_op(";", "}"):
                return nodes.Return()
            return nodes.Return(self._expression())

        expr = self._expression()
        if self._tok.is_op("=", "+=", "-="):
            op_tok = self._next()
            if not isinstance(expr, (nodes.Name, nodes.Member, nodes.Index)):
                raise self._error("invalid assignment target", op_tok)
            self._skip_newlines()
            return nodes.Assign(target=expr, value=self._expression(), op=str(op_tok.value))
        return nodes.ExprStmt(expr)

    def _if_rest(self) -> nodes.If:
        test = self._expression()
        body = self._block()
        orelse: Tuple[Any, ...] = ()
        save = self._pos
        self._skip_newlines()
        if self._tok.is_name("elif"):
            self._next()
            orelse = (self._if_rest(),)
        elif self._tok.is_name("else"):
            self._next()
            if self._tok.is_name("if"):
                self._next()
                orelse = (self._if_rest(),)
            else:
                orelse = self._block()
        else:
            self._pos = save
        return nodes.If(test=test, body=body, orelse=orelse)

    def _for(self) -> nodes.For:
        self._next()
        var = self._expect_identifier("loop variable")
        if not self._tok.is_name("in"):
            raise self._error("expected 'in' in for statement")
        self._next()
        iterable = self._expression()
        return nodes.For(var=var, iterable=iterable, body=self._block())

    # -- expressions -------------------------------------------------------

    def _expression(self) -> Any:
        return self._nested(self._arrow if self._at_arrow() else self._or)

    def _at_arrow(self) -> bool:
        tok = self._tok
        if tok.kind == NAME and tok.value not in KEYWORDS and self._peek().is_op("=>"):
            return True
        if not tok.is_op("("):
            return False
        offset = 1
        expect_name = True
        while True:
            ahead = self._peek(offset)
            if ahead.is_op(")"):
                return self._peek(offset + 1).is_op("=>")
            if expect_name and ahead.kind == NAME and ahead.value not in KEYWORDS:
                expect_name = False
            elif not expect_name and ahead.is_op(","):
                expect_name = True
            else:
                return False
            offset += 1

    def _arrow(self) -> nodes.Arrow:
        params: List[str] = []
        if self._tok.is_op("("):
            self._next()
            while not self._tok.is_op(")"):
                params.append(self._expect_identifier("parameter name"))
                if self._tok.is_op(","):
                    self._next()
            self._next()
        else:
            params.append(self._expect_identifier("parameter name"))
        self._expect_op("=>")
        return nodes.Arrow(params=tuple(params), body=self._expression())

    def _or(self) -> Any:
        left = self._and()
        while self._tok.is_name("or") or self._tok.is_op("||"):
            op = self._next().value
            left = nodes.Logical(str(op), left, self._and())
        return left

    def _and(self) -> Any:
        left = self._not()
        while self._tok.is_name("and") or self._tok.is_op("&&"):
            op = self._next().value
            left = nodes.Logical(str(op), left, self._not())
        return left

    def _not(self) -> Any:
        if self._tok.is_name("not") or self._tok.is_op("!"):
            op = self._next().value
            return nodes.Unary(str(op), self._nested(self._not))
        return self._compare()

    def _compare(self) -> Any:
        left = self._additive()
        while True:
            tok = self._tok
            if tok.kind == "OP" and tok.value in _COMPARE_OPS:
                self._next()
                left = nodes.Binary(_COMPARE_OPS[str(tok.value)], left, self._additive())
            elif tok.is_name("in"):
                self._next()
                left = nodes.Binary("in", left, self._additive())
            else:
                return left

    def _additive(self) -> Any:
        left = self._term()
        while self._tok.is_op("+", "-"):
            op = str(self._next().value)
            left = nodes.Binary(op, left, self._term())
        return left

    def _term(self) -> Any:
        left = self._unary()
        while self._tok.is_op("*", "/", "%"):
            op = str(self._next().value)
            left = nodes.Binary(op, left, self._unary())
        return left

    def _unary(self) -> Any:
        if self._tok.is_op("-"):
            self._next()
            return nodes.Unary("-", self._nested(self._unary))
        if self._tok.is_op("+"):
            self._next()
            return self._nested(self._unary)
        if self._tok.is_name("await"):
            self._next()
            return nodes.Await(self._nested(self._unary))
        return self._postfix()

    def _postfix(self) -> Any:
        if self._tok.is_name("new"):
            expr = self._new()
        else:
            expr = self._primary()
        while True:
            tok = self._tok
            if tok.is_op("."):
                self._next()
                expr = nodes.Member(expr, self._member_name())
            elif tok.is_op("["):
                self._next()
                self._skip_newlines()
                key = self._expression()
                self._skip_newlines()
                self._expect_op("]")
                expr = nodes.Index(expr, key)
            elif tok.is_op("("):
                args, keywords = self._arguments()
                expr = nodes.Call(expr, args, keywords)
            else:
                return expr

    def _member_name(self) -> str:
        tok = self._tok
        if tok.kind != NAME:
            raise self._error(f"expected attribute name but found {self._describe(tok)}")
        self._next()
        return str(tok.value)

    def _new(self) -> nodes.New:
        self._next()
        func = self._primary()
        while self._tok.is_op("."):
            self._next()
            func = nodes.Member(func, self._member_name())
        args: Tuple[Any, ...] = ()
        if self._tok.is_op("("):
            args, keywords = self._arguments()
            if keywords:
                raise self._error("keyword arguments are not allowed with 'new'")
        return nodes.New(func, args)

    def _arguments(self) -> Tuple[Tuple[Any, ...], Tuple[nodes.ObjectEntry, ...]]:
        self._expect_op("(")
        args: List[Any] = []
        keywords: List[nodes.ObjectEntry] = []
        self._skip_newlines()
        while not self._tok.is_op(")"):
            tok = self._tok
            if tok.kind == NAME and tok.value not in KEYWORDS and self._peek().is_op("=", ":"):
                self._next()
                self._next()
                self._skip_newlines()
                keywords.append(nodes.ObjectEntry(str(tok.value), self._expression()))
            else:
                if keywords:
                    raise self._error("positional argument follows keyword argument")
                args.append(self._expression())
            self._skip_newlines()
            if self._tok.is_op(","):
                self._next()
                self._skip_newlines()
            elif not self._tok.is_op(")"):
                raise self._error(f"expected ',' or ')' but found {self._describe(self._tok)}")
        self._next()
        return tuple(args), tuple(keywords)

    def _primary(self) -> Any:
        tok = self._tok
        if tok.kind == NUMBER:
            self._next()
            return nodes.Literal(tok.value)
        if tok.kind == STRING:
            self._next()
            return nodes.Literal(tok.value)
        if tok.kind == FSTRING:
            self._next()
            parts = split_formatted(str(tok.value), line=tok.line, column=tok.column)
            return nodes.FormattedString(self._interpolation_parts(parts, tok))
        if tok.kind == TEMPLATE:
            self._next()
            parts = split_template(str(tok.value), line=tok.line, column=tok.column)
            return nodes.Template(self._interpolation_parts(parts, tok))
        if tok.kind == NAME:
            if tok.value in _CONSTANTS:
                self._next()
                return nodes.Literal(_CONSTANTS[str(tok.value)])
            if tok.value in KEYWORDS:
                raise self._error(f"unexpected keyword {tok.value!r}")
            self._next()
            return nodes.Name(str(tok.value))
        if tok.is_op("("):
            self._next()
            self._skip_newlines()
            expr = self._expression()
            self._skip_newlines()
            self._expect_op(")")
            return expr
        if tok.is_op("["):
            return self._list()
        if tok.is_op("{"):
            return self._object()
        raise self._error(f"unexpected {self._describe(tok)}")

    def _interpolation_parts(self, pieces: List[Tuple[bool, str]], tok: Token) -> Tuple[Any, ...]:
        parts: List[Any] = []
        for is_expr, text in pieces:
            if is_expr:
                parts.append(Parser(text, line=tok.line, column=tok.column, depth=self._depth).parse_expression())
            else:
                parts.append(text)
        return tuple(parts)

    def _list(self) -> Any:
        self._expect_op("[")
        self._skip_newlines()
        if self._tok.is_op("]"):
            self._next()
            return nodes.ListExpr(())
        first = self._expression()
        self._skip_newlines()
        if self._tok.is_name("for"):
            self._next()
            var = self._expect_identifier("comprehension variable")
            if not self._tok.is_name("in"):
                raise self._error("expected 'in' in comprehension")
            self._next()
            iterable = self._or()
            condition = None
            self._skip_newlines()
            if self._tok.is_name("if"):
                self._next()
                condition = self._or()
                self._skip_newlines()
            self._expect_op("]")
            return nodes.Comprehension(element=first, var=var, iterable=iterable, condition=condition)
        elements = [first]
        while self._tok.is_op(","):
            self._next()
            self._skip_newlines()
            if self._tok.is_op("]"):
                break
            elements.append(self._expression())
            self._skip_newlines()
        self._expect_op("]")
        return nodes.ListExpr(tuple(elements))

    def _object(self) -> nodes.ObjectExpr:
        self._expect_op("{")
        entries: List[nodes.ObjectEntry] = []
        self._skip_newlines()
        while not self._tok.is_op("}"):
            tok = self._tok
            if tok.kind == STRING:
                key, quoted = str(tok.value), True
            elif tok.kind == NAME:
                key, quoted = str(tok.value), False
            elif tok.kind == NUMBER:
                key, quoted = str(tok.value), True
            else:
                raise self._error(f"expected object key but found {self._describe(tok)}")
            self._next()
            if not self._tok.is_op(":", "="):
                raise self._error(f"expected ':' after object key {key!r}")
            self._next()
            self._skip_newlines()
            entries.append(nodes.ObjectEntry(key, self._expression(), quoted))
            self._skip_newlines()
            if self._tok.is_op(","):
                self._next()
                self._skip_newlines()
            elif not self._tok.is_op("}"):
                raise self._error(f"expected ',' or '}}' but found {self._describe(self._tok)}")
        self._next()
        return nodes.ObjectExpr(tuple(entries))


def parse(text: str) -> nodes.Block:
    """Parse a capability body (surface syntax or core form)."""
    return Parser(text).parse()


def parse_expression(text: str) -> Any:
    return Parser(text).parse_expression()
