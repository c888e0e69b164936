"""Tokenizer for HiveLang bodies and their core form.

The lexer is deliberately flat: it produces a list of ``Token`` objects and
leaves every structural decision (blocks vs object literals, keyword
arguments, arrow functions) to the parser. Interpolated strings are returned
with their raw content; the parser splits them into literal and expression
parts with ``split_formatted`` / ``split_template``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .errors import HiveSyntaxError

NAME = "NAME"
NUMBER = "NUMBER"
STRING = "STRING"
FSTRING = "FSTRING"
TEMPLATE = "TEMPLATE"
OP = "OP"
NEWLINE = "NEWLINE"
EOF = "EOF"

_THREE_CHAR_OPS = ("===", "!==")
_TWO_CHAR_OPS = ("==", "!=", "<=", ">=", "=>", "&&", "||", "+=", "-=")
_ONE_CHAR_OPS = "()[]{},:;.+-*/%<>=!"

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "/": "/",
    "`": "`",
    "$": "$",
}


@dataclass(frozen=True)
class Token:
    kind: str
    value: object
    line: int
    column: int

    def is_op(self, *values: str) -> bool:
        return self.kind == OP and self.value in values

    def is_name(self, *values: str) -> bool:
        return self.kind == NAME and self.value in values


def decode_escapes(text: str, *, line: int = 0, column: int = 0) -> str:
    """Resolve backslash escapes in a string literal body."""
    if "\\" not in text:
        return text
    out: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= len(text):
            raise HiveSyntaxError("dangling backslash in string", line=line, column=column)
        nxt = text[i + 1]
        if nxt == "u":
            digits = text[i + 2 : i + 6]
            if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
                raise HiveSyntaxError("invalid \\u escape in string", line=line, column=column)
            out.append(chr(int(digits, 16)))
            i += 6
            continue
        # unknown escapes keep the character, as JavaScript does
        out.append(_SIMPLE_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


class Lexer:
    """Convert HiveLang text into tokens.

    Examples:
        >>> [t.value for t in Lexer("x = 1").tokenize()]
        ['x', '=', 1, None]
    """

    def __init__(self, text: str, *, line: int = 1, column: int = 1) -> None:
        self._text = text
        self._pos = 0
        self._line = line
        self._col = column
        self._tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        text = self._text
        while self._pos < len(text):
            ch = text[self._pos]
            if ch == "\n":
                self._newline()
            elif ch in " \t\r":
                self._advance(1)
            elif ch == "#" or text.startswith("//", self._pos):
                self._skip_comment()
            elif ch.isdigit():
                self._number()
            elif ch.isalpha() or ch == "_":
                self._name_or_fstring()
            elif ch in "\"'":
                self._string()
            elif ch == "`":
                self._template()
            else:
                self._operator()
        self._emit(EOF, None, self._line, self._col)
        return self._tokens

    # -- helpers -----------------------------------------------------------

    def _advance(self, count: int) -> None:
        for _ in range(count):
            if self._text[self._pos] == "\n":
                self._line += 1
                self._col = 1
            else:
                self._col += 1
            self._pos += 1

    def _emit(self, kind: str, value: object, line: int, column: int) -> None:
        self._tokens.append(Token(kind, value, line, column))

    def _error(self, message: str) -> HiveSyntaxError:
        return HiveSyntaxError(message, line=self._line, column=self._col)

    def _newline(self) -> None:
        if self._tokens and self._tokens[-1].kind != NEWLINE:
            self._emit(NEWLINE, None, self._line, self._col)
        self._advance(1)

    def _skip_comment(self) -> None:
        end = self._text.find("\n", self._pos)
        if end == -1:
            end = len(self._text)
        self._advance(end - self._pos)

    def _number(self) -> None:
        text = self._text
        start, line, col = self._pos, self._line, self._col
        end = start
        while end < len(text) and text[end].isdigit():
            end += 1
        is_float = False
        if end + 1 < len(text) and text[end] == "." and text[end + 1].isdigit():
            is_float = True
            end += 1
            while end < len(text) and text[end].isdigit():
                end += 1
        if end < len(text) and text[end] in "eE":
            ahead = end + 1
            if ahead < len(text) and text[ahead] in "+-":
                ahead += 1
            if ahead < len(text) and text[ahead].isdigit():
                is_float = True
                end = ahead
                while end < len(text) and text[end].isdigit():
                    end += 1
        raw = text[start:end]
        self._advance(end - start)
        self._emit(NUMBER, float(raw) if is_float else int(raw), line, col)

    def _name_or_fstring(self) -> None:
        text = self._text
        start, line, col = self._pos, self._line, self._col
        end = start
        while end < len(text) and (text[end].isalnum() or text[end] == "_"):
            end += 1
        word = text[start:end]
        if word in ("f", "F") and end < len(text) and text[end] in "\"'":
            self._advance(1)
            raw = self._quoted_body()
            self._emit(FSTRING, raw, line, col)
            return
        self._advance(end - start)
        self._emit(NAME, word, line, col)

    def _quoted_body(self) -> str:
        """Consume a quoted literal starting at the quote; return the raw body."""
        text = self._text
        quote = text[self._pos]
        i = self._pos + 1
        while i < len(text):
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == "\n":
                break
            if ch == quote:
                raw = text[self._pos + 1 : i]
                self._advance(i + 1 - self._pos)
                return raw
            i += 1
        raise self._error("unterminated string literal")

    def _string(self) -> None:
        line, col = self._line, self._col
        raw = self._quoted_body()
        self._emit(STRING, decode_escapes(raw, line=line, column=col), line, col)

    def _template(self) -> None:
        line, col = self._line, self._col
        end = _scan_template(self._text, self._pos)
        if end == -1:
            raise self._error("unterminated template literal")
        raw = self._text[self._pos + 1 : end]
        self._advance(end + 1 - self._pos)
        self._emit(TEMPLATE, raw, line, col)

    def _operator(self) -> None:
        text = self._text
        line, col = self._line, self._col
        for group in (_THREE_CHAR_OPS, _TWO_CHAR_OPS):
            for op in group:
                if text.startswith(op, self._pos):
                    self._advance(len(op))
                    self._emit(OP, op, line, col)
                    return
        ch = text[self._pos]
        if ch in _ONE_CHAR_OPS:
            self._advance(1)
            self._emit(OP, ch, line, col)
            return
        raise self._error(f"unexpected character {ch!r}")


def _skip_quoted(text: str, pos: int) -> int:
    """Return the index just past the quoted literal starting at ``pos``."""
    quote = text[pos]
    if quote == "`":
        end = _scan_template(text, pos)
        return -1 if end == -1 else end + 1
    i = pos + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return -1


def _matching_brace(text: str, pos: int) -> int:
    """Given ``text[pos] == '{'``, return the index of its closing brace or -1."""
    depth = 0
    i = pos
    while i < len(text):
        ch = text[i]
        if ch in "\"'`":
            i = _skip_quoted(text, i)
            if i == -1:
                return -1
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _scan_template(text: str, pos: int) -> int:
    """Given ``text[pos] == '`'``, return the index of the closing backtick or -1."""
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i
        if ch == "$" and text.startswith("${", i):
            close = _matching_brace(text, i + 1)
            if close == -1:
                return -1
            i = close + 1
            continue
        i += 1
    return -1


def split_formatted(raw: str, *, line: int = 0, column: int = 0) -> List[Tuple[bool, str]]:
    """Split an f-string body into ``(is_expression, text)`` pieces.

    ``{{`` and ``}}`` produce literal braces; literal pieces are escape-decoded.
    """
    pieces: List[Tuple[bool, str]] = []
    buf: List[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if raw.startswith("{{", i) or raw.startswith("}}", i):
            buf.append(ch)
            i += 2
            continue
        if ch == "{":
            close = _matching_brace(raw, i)
            if close == -1:
                raise HiveSyntaxError("unclosed '{' in interpolated string", line=line, column=column)
            if buf:
                pieces.append((False, decode_escapes("".join(buf), line=line, column=column)))
                buf = []
            expression = raw[i + 1 : close].strip()
            if not expression:
                raise HiveSyntaxError("empty placeholder in interpolated string", line=line, column=column)
            pieces.append((True, expression))
            i = close + 1
            continue
        buf.append(ch)
        i += 1
    if buf:
        pieces.append((False, decode_escapes("".join(buf), line=line, column=column)))
    return pieces


def split_template(raw: str, *, line: int = 0, column: int = 0) -> List[Tuple[bool, str]]:
    """Split a backtick template body into ``(is_expression, text)`` pieces."""
    pieces: List[Tuple[bool, str]] = []
    buf: List[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\":
            buf.append(raw[i : i + 2])
            i += 2
            continue
        if raw.startswith("${", i):
            close = _matching_brace(raw, i + 1)
            if close == -1:
                raise HiveSyntaxError("unclosed '${' in template literal", line=line, column=column)
            if buf:
                pieces.append((False, decode_escapes("".join(buf), line=line, column=column)))
                buf = []
            expression = raw[i + 2 : close].strip()
            if not expression:
                raise HiveSyntaxError("empty placeholder in template literal", line=line, column=column)
            pieces.append((True, expression))
            i = close + 1
            continue
        buf.append(ch)
        i += 1
    if buf:
        pieces.append((False, decode_escapes("".join(buf), line=line, column=column)))
    return pieces
