"""Error types raised while reading HiveLang source.

Purpose:
- Report lexical and grammatical problems in a capability body with the
  position they were found at.

Usage:
- ``HiveSyntaxError`` is raised by the lexer and parser. The runtime converts it
  into a ``CompileError`` that names the offending capability, shifting ``line``
  so it points into the full integration source.
"""

from __future__ import annotations


class HiveSyntaxError(Exception):
    """Raised when HiveLang text cannot be tokenized or parsed.

    Args:
        message: Human-readable description of the problem.
        line: 1-based line number relative to the parsed text.
        column: 1-based column number.
    """

    def __init__(self, message: str, *, line: int = 0, column: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line:
            return f"{self.message} (line {self.line}, column {self.column})"
        return self.message

    def shifted(self, offset: int) -> "HiveSyntaxError":
        """Return a copy whose line number is moved down by ``offset`` lines."""
        return HiveSyntaxError(self.message, line=self.line + offset if self.line else 0, column=self.column)
