"""Tokenizer for tape scripts."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

WHITESPACE = frozenset(" \t\n\r")
QUOTES = frozenset("'\"")


class TokenKind(Enum):
    EOF = "eof"
    IDENT = "identifier"
    STRING = "string"
    NUMBER = "integer"
    DURATION = "duration"
    AT = "@"
    PLUS = "+"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    literal: str
    position: int
    # False only for a string token whose closing quote is missing.
    terminated: bool = True


def _is_letter(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_digit(ch: str) -> bool:
    return ch != "" and "0" <= ch <= "9"


def _is_ident_char(ch: str) -> bool:
    # "+" is allowed so Ctrl+C lexes as a single identifier.
    return _is_letter(ch) or _is_digit(ch) or ch == "+"


class Lexer:
    """Produce tokens from a script one at a time, left to right.

    Positions are zero-based byte offsets into the UTF-8 encoded script so
    error messages line up with what editors report for ASCII scripts and
    stay monotonic for anything else.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._index = 0
        self._offsets = self._byte_offsets(source)

    @staticmethod
    def _byte_offsets(source: str) -> list[int]:
        offsets = []
        total = 0
        for ch in source:
            offsets.append(total)
            total += len(ch.encode("utf-8"))
        offsets.append(total)
        return offsets

    @property
    def _current(self) -> str:
        if self._index >= len(self._source):
            return ""
        return self._source[self._index]

    def _peek(self) -> str:
        if self._index + 1 >= len(self._source):
            return ""
        return self._source[self._index + 1]

    def _position(self, index: int | None = None) -> int:
        return self._offsets[self._index if index is None else index]

    def next_token(self) -> Token:
        while True:
            while self._current in WHITESPACE:
                self._index += 1

            ch = self._current
            start = self._index
            if ch == "":
                return Token(TokenKind.EOF, "", self._position())
            if ch == "@":
                self._index += 1
                return Token(TokenKind.AT, "@", self._position(start))
            if ch == "+":
                self._index += 1
                return Token(TokenKind.PLUS, "+", self._position(start))
            if ch in QUOTES:
                return self._read_string(ch)
            if _is_digit(ch):
                return self._read_number_or_duration()
            if _is_letter(ch):
                return self._read_ident()
            # Anything else is skipped.
            self._index += 1

    def _read_string(self, quote: str) -> Token:
        start = self._index
        self._index += 1
        while self._current and self._current != quote:
            self._index += 1
        text = self._source[start + 1 : self._index]
        terminated = self._current == quote
        if terminated:
            self._index += 1
        return Token(TokenKind.STRING, text, self._position(start), terminated)

    def _read_number_or_duration(self) -> Token:
        start = self._index
        while _is_digit(self._current):
            self._index += 1
        if self._current == "m" and self._peek() == "s":
            self._index += 2
            kind = TokenKind.DURATION
        elif self._current == "s":
            self._index += 1
            kind = TokenKind.DURATION
        else:
            kind = TokenKind.NUMBER
        literal = self._source[start : self._index]
        return Token(kind, literal, self._position(start))

    def _read_ident(self) -> Token:
        start = self._index
        while _is_ident_char(self._current):
            self._index += 1
        literal = self._source[start : self._index]
        return Token(TokenKind.IDENT, literal, self._position(start))


def tokenize(source: str) -> Iterator[Token]:
    """Yield every token in ``source``, ending with the EOF token."""
    lexer = Lexer(source)
    while True:
        token = lexer.next_token()
        yield token
        if token.kind is TokenKind.EOF:
            return
