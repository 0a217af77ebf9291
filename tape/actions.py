"""Action model produced by the tape parser."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Tuple, Union

DEFAULT_TYPE_SPEED = timedelta(milliseconds=50)
NO_DELAY = timedelta(0)


@dataclass(frozen=True)
class Type:
    """Type ``text`` one character at a time, pausing ``speed`` between them."""

    text: str
    speed: timedelta = DEFAULT_TYPE_SPEED
    delay: timedelta = NO_DELAY


@dataclass(frozen=True)
class Sleep:
    duration: timedelta


@dataclass(frozen=True)
class Key:
    """Press a named key ``repeat`` times, then pause ``delay`` once."""

    name: str
    delay: timedelta = NO_DELAY
    repeat: int = 1

    def __post_init__(self) -> None:
        if self.repeat < 1:
            raise ValueError("repeat must be at least 1")


@dataclass(frozen=True)
class Ctrl:
    key: str


Action = Union[Type, Sleep, Key, Ctrl]
Script = Tuple[Action, ...]


def format_duration(value: timedelta) -> str:
    millis = int(value / timedelta(milliseconds=1))
    if millis and millis % 1000 == 0:
        return f"{millis // 1000}s"
    return f"{millis}ms"


def describe(action: Action) -> str:
    """Short label used in logs and the run event log."""
    if isinstance(action, Type):
        text = action.text if len(action.text) <= 40 else action.text[:37] + "..."
        return f"Type@{format_duration(action.speed)} {text!r}"
    if isinstance(action, Sleep):
        return f"Sleep {format_duration(action.duration)}"
    if isinstance(action, Key):
        label = action.name
        if action.delay:
            label += f"@{format_duration(action.delay)}"
        if action.repeat != 1:
            label += f" {action.repeat}"
        return label
    if isinstance(action, Ctrl):
        return f"Ctrl+{action.key.upper()}"
    raise TypeError(f"unsupported action: {action!r}")
