# File: ddlgen/lexer.py
"""
ddlgen - T-SQL Lexer
=====================
Turns SQL text into a flat list of positioned ``Token`` objects.

Recognised:
    - ``-- line`` comments and nested ``/* block */`` comments (dropped)
    - ``[bracketed]`` and ``"quoted"`` identifiers (``]]`` / ``""`` escapes)
    - ``'string'`` and ``N'unicode'`` literals (``''`` escape)
    - integers, decimals, ``0x`` hex literals
    - ``@variables`` and ``#temp`` names
    - punctuation and operators

Every token carries its 1-based line and column so that the parser can
report exact positions.  Unterminated strings, identifiers or comments raise
``ParseError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List

from ddlgen.errors import ParseError

logger: logging.Logger = logging.getLogger("ddlgen.lexer")


class TokenKind(str, Enum):
    WORD = "word"
    QUOTED_IDENT = "quoted_ident"
    STRING = "string"
    NUMBER = "number"
    VARIABLE = "variable"
    PUNCT = "punct"
    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    value: str
    line: int
    column: int
    start: int
    end: int

    @property
    def upper(self) -> str:
        """Keyword comparison form; quoted identifiers never match keywords."""
        return self.value.upper() if self.kind == TokenKind.WORD else ""

    @property
    def is_identifier(self) -> bool:
        return self.kind in (TokenKind.WORD, TokenKind.QUOTED_IDENT)

    def __repr__(self) -> str:
        return f"<Token {self.kind.value} {self.value!r} @{self.line}:{self.column}>"


_TWO_CHAR_OPERATORS = frozenset({"<=", ">=", "<>", "!=", "!<", "!>", "::"})
_SINGLE_PUNCT = frozenset("(),;.=<>+-*/%&|^~!:")


class Lexer:
    """Single-pass scanner over one SQL document."""

    def __init__(self, text: str) -> None:
        self.text: str = text
        self.pos: int = 0
        self.line: int = 1
        self.column: int = 1
        self.tokens: List[Token] = []

    # ------------------------------------------------------------------
    # Cursor helpers
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        idx: int = self.pos + offset
        return self.text[idx] if idx < len(self.text) else ""

    def _advance(self, count: int = 1) -> None:
        for _ in range(count):
            if self.pos >= len(self.text):
                return
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _emit(self, kind: TokenKind, value: str, line: int, column: int, start: int) -> None:
        self.tokens.append(Token(kind, value, line, column, start, self.pos))

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def tokenize(self) -> List[Token]:
        text: str = self.text
        while self.pos < len(text):
            ch: str = text[self.pos]
            nxt: str = self._peek(1)
            line, column, start = self.line, self.column, self.pos

            if ch.isspace():
                self._advance()
            elif ch == "-" and nxt == "-":
                while self.pos < len(text) and text[self.pos] != "\n":
                    self._advance()
            elif ch == "/" and nxt == "*":
                self._skip_block_comment(line, column)
            elif ch in "Nn" and nxt == "'":
                self._advance()
                self._emit(TokenKind.STRING, self._read_quoted("'", line, column), line, column, start)
            elif ch == "'":
                self._emit(TokenKind.STRING, self._read_quoted("'", line, column), line, column, start)
            elif ch == "[":
                self._emit(TokenKind.QUOTED_IDENT, self._read_quoted("]", line, column), line, column, start)
            elif ch == '"':
                self._emit(TokenKind.QUOTED_IDENT, self._read_quoted('"', line, column), line, column, start)
            elif ch.isdigit() or (ch == "." and nxt.isdigit()):
                self._emit(TokenKind.NUMBER, self._read_number(), line, column, start)
            elif ch in "@#" or ch.isalpha() or ch == "_":
                kind = TokenKind.VARIABLE if ch == "@" else TokenKind.WORD
                self._emit(kind, self._read_word(), line, column, start)
            elif ch + nxt in _TWO_CHAR_OPERATORS:
                self._advance(2)
                self._emit(TokenKind.PUNCT, ch + nxt, line, column, start)
            elif ch in _SINGLE_PUNCT:
                self._advance()
                self._emit(TokenKind.PUNCT, ch, line, column, start)
            else:
                raise ParseError(f"Unexpected character {ch!r}", line, column)

        self.tokens.append(
            Token(TokenKind.EOF, "", self.line, self.column, self.pos, self.pos)
        )
        return self.tokens

    def _skip_block_comment(self, line: int, column: int) -> None:
        depth: int = 0
        while self.pos < len(self.text):
            pair: str = self.text[self.pos : self.pos + 2]
            if pair == "/*":
                depth += 1
                self._advance(2)
            elif pair == "*/":
                depth -= 1
                self._advance(2)
                if depth == 0:
                    return
            else:
                self._advance()
        raise ParseError("Unterminated block comment", line, column)

    def _read_quoted(self, closing: str, line: int, column: int) -> str:
        self._advance()  # opening quote / bracket
        chars: List[str] = []
        while self.pos < len(self.text):
            ch: str = self.text[self.pos]
            if ch == closing:
                if self._peek(1) == closing:
                    chars.append(closing)
                    self._advance(2)
                    continue
                self._advance()
                return "".join(chars)
            chars.append(ch)
            self._advance()
        what: str = "string literal" if closing == "'" else "quoted identifier"
        raise ParseError(f"Unterminated {what}", line, column)

    def _read_number(self) -> str:
        text: str = self.text
        start: int = self.pos
        if text[self.pos] == "0" and self._peek(1) and self._peek(1) in "xX":
            self._advance(2)
            while self.pos < len(text) and text[self.pos] in "0123456789abcdefABCDEF":
                self._advance()
            return text[start : self.pos]
        while self.pos < len(text) and (text[self.pos].isdigit() or text[self.pos] == "."):
            self._advance()
        if self._peek() and self._peek() in "eE" and (
            self._peek(1).isdigit() or (self._peek(1) in "+-" and self._peek(2).isdigit())
        ):
            self._advance(2)
            while self.pos < len(text) and text[self.pos].isdigit():
                self._advance()
        return text[start : self.pos]

    def _read_word(self) -> str:
        text: str = self.text
        start: int = self.pos
        self._advance()
        while self.pos < len(text) and (
            text[self.pos].isalnum() or text[self.pos] in "_@#$"
        ):
            self._advance()
        return text[start : self.pos]


def tokenize(text: str) -> List[Token]:
    """Tokenize *text*; the returned list always ends with an ``EOF`` token."""
    tokens: List[Token] = Lexer(text).tokenize()
    logger.debug("Lexed %d tokens", len(tokens) - 1)
    return tokens


__all__: List[str] = ["TokenKind", "Token", "Lexer", "tokenize"]
