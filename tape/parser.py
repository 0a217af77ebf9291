"""Parser that turns tape scripts into an ordered tuple of actions."""
from __future__ import annotations

import re
from datetime import timedelta
from typing import List

from tape.actions import (
    DEFAULT_TYPE_SPEED,
    NO_DELAY,
    Action,
    Ctrl,
    Key,
    Script,
    Sleep,
    Type,
)
from tape.keys import (
    CTRL_PREFIX,
    VALID_KEYS_HINT,
    ctrl_letter,
    is_ctrl_combo,
    is_named_key,
)
from tape.lexer import Lexer, Token, TokenKind

DURATION_PATTERN = re.compile(r"(?P<value>[0-9]+)(?P<unit>ms|s)")
DURATION_HINT = "use '500ms' or '2s'"


class ParseError(ValueError):
    """Raised when a tape script cannot be parsed.

    ``position`` is the zero-based byte offset of the token where parsing
    stopped.
    """

    def __init__(self, position: int, message: str) -> None:
        super().__init__(position, message)
        self.position = position
        self.message = message

    def __str__(self) -> str:
        return f"position {self.position}: {self.message}"


class UnexpectedToken(ParseError):
    """The current token cannot start an action."""


class UnknownKey(ParseError):
    """An identifier is neither a command nor a recognised key."""


class MissingArgument(ParseError):
    """A command or ``@`` modifier is missing its required argument."""


class InvalidDuration(ParseError):
    """A duration literal has no unit or cannot be parsed."""


class InvalidRepeat(ParseError):
    """A key repeat count is below one."""


def parse_duration(literal: str) -> timedelta:
    match = DURATION_PATTERN.fullmatch(literal)
    if match is None:
        raise ValueError(f"invalid duration {literal!r}")
    value = int(match.group("value"))
    try:
        if match.group("unit") == "ms":
            return timedelta(milliseconds=value)
        return timedelta(seconds=value)
    except OverflowError as exc:
        raise ValueError(f"invalid duration {literal!r}: out of range") from exc


def _quoted(literal: str) -> str:
    return '"' + literal.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _unknown_key(token: Token) -> UnknownKey:
    return UnknownKey(
        token.position,
        f"unknown key {_quoted(token.literal)}; valid keys: {VALID_KEYS_HINT}",
    )


class Parser:
    def __init__(self, lexer: Lexer) -> None:
        self._lexer = lexer
        self._current = lexer.next_token()
        self._peek = lexer.next_token()

    def _advance(self) -> Token:
        consumed = self._current
        self._current = self._peek
        self._peek = self._lexer.next_token()
        return consumed

    def parse(self) -> Script:
        actions: List[Action] = []
        while self._current.kind is not TokenKind.EOF:
            actions.append(self._parse_action())
        return tuple(actions)

    def _parse_action(self) -> Action:
        token = self._current
        if token.kind is not TokenKind.IDENT:
            got = token.literal or token.kind.value
            raise UnexpectedToken(
                token.position, f"expected command or key, got {got}"
            )
        ident = token.literal.lower()
        if ident.startswith(CTRL_PREFIX):
            return self._parse_ctrl()
        if ident == "type":
            return self._parse_type()
        if ident == "sleep":
            return self._parse_sleep()
        return self._parse_key()

    def _parse_ctrl(self) -> Ctrl:
        token = self._current
        if not is_ctrl_combo(token.literal):
            raise _unknown_key(token)
        self._advance()
        return Ctrl(key=ctrl_letter(token.literal))

    def _parse_type(self) -> Type:
        self._advance()
        speed = DEFAULT_TYPE_SPEED
        if self._current.kind is TokenKind.AT:
            self._advance()
            speed = self._expect_duration("expected duration after @")

        token = self._current
        if token.kind is not TokenKind.STRING:
            raise MissingArgument(token.position, "expected quoted string after Type")
        if not token.terminated:
            raise MissingArgument(token.position, "unterminated quoted string")
        self._advance()
        return Type(text=token.literal, speed=speed)

    def _parse_sleep(self) -> Sleep:
        self._advance()
        return Sleep(duration=self._expect_duration("expected duration after Sleep"))

    def _parse_key(self) -> Key:
        token = self._current
        if not is_named_key(token.literal):
            raise _unknown_key(token)
        self._advance()

        delay = NO_DELAY
        if self._current.kind is TokenKind.AT:
            self._advance()
            delay = self._expect_duration("expected duration after @")

        repeat = 1
        if self._current.kind is TokenKind.NUMBER:
            count = self._advance()
            try:
                repeat = int(count.literal)
            except ValueError as exc:
                raise InvalidRepeat(
                    count.position, f"invalid repeat count {_quoted(count.literal)}"
                ) from exc
            if repeat < 1:
                raise InvalidRepeat(
                    count.position,
                    f"repeat count {_quoted(count.literal)} must be at least 1",
                )
        return Key(name=token.literal, delay=delay, repeat=repeat)

    def _expect_duration(self, missing_message: str) -> timedelta:
        token = self._current
        if token.kind not in (TokenKind.DURATION, TokenKind.NUMBER):
            raise MissingArgument(token.position, missing_message)
        try:
            value = parse_duration(token.literal)
        except ValueError as exc:
            raise InvalidDuration(
                token.position,
                f"invalid duration {_quoted(token.literal)}; {DURATION_HINT}",
            ) from exc
        self._advance()
        return value


def parse(script: str) -> Script:
    """Parse ``script`` into actions; the first error aborts the whole parse."""
    return Parser(Lexer(script)).parse()
