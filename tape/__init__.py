"""Tape script language: lexer, parser, and action model."""
from __future__ import annotations

from .actions import Action, Ctrl, Key, Script, Sleep, Type, describe
from .parser import (
    InvalidDuration,
    InvalidRepeat,
    MissingArgument,
    ParseError,
    UnexpectedToken,
    UnknownKey,
    parse,
    parse_duration,
)

__all__ = [
    "Action",
    "Ctrl",
    "InvalidDuration",
    "InvalidRepeat",
    "Key",
    "MissingArgument",
    "ParseError",
    "Script",
    "Sleep",
    "Type",
    "UnexpectedToken",
    "UnknownKey",
    "describe",
    "parse",
    "parse_duration",
]
