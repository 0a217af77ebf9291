"""Named key table shared by the tape parser and the browser renderer."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

CTRL_PREFIX = "ctrl+"


class UnknownKeyName(KeyError):
    """Raised when a key name has no browser key code."""


@dataclass(frozen=True)
class NamedKey:
    display: str
    code: str


NAMED_KEYS: Mapping[str, NamedKey] = MappingProxyType(
    {
        "enter": NamedKey("Enter", "Enter"),
        "tab": NamedKey("Tab", "Tab"),
        "escape": NamedKey("Escape", "Escape"),
        "space": NamedKey("Space", "Space"),
        "backspace": NamedKey("Backspace", "Backspace"),
        "delete": NamedKey("Delete", "Delete"),
        "up": NamedKey("Up", "ArrowUp"),
        "down": NamedKey("Down", "ArrowDown"),
        "left": NamedKey("Left", "ArrowLeft"),
        "right": NamedKey("Right", "ArrowRight"),
        "home": NamedKey("Home", "Home"),
        "end": NamedKey("End", "End"),
        "pageup": NamedKey("PageUp", "PageUp"),
        "pagedown": NamedKey("PageDown", "PageDown"),
    }
)

# Characters inside Type strings that must be pressed as named keys.
CHARACTER_KEYS: Mapping[str, str] = MappingProxyType(
    {
        " ": NAMED_KEYS["space"].code,
        "\n": NAMED_KEYS["enter"].code,
        "\r": NAMED_KEYS["enter"].code,
        "\t": NAMED_KEYS["tab"].code,
    }
)

VALID_KEYS_HINT = ", ".join(
    [key.display for key in NAMED_KEYS.values()] + ["Ctrl+<letter>"]
)


def is_named_key(name: str) -> bool:
    return name.lower() in NAMED_KEYS


def is_ctrl_combo(name: str) -> bool:
    """True for ``Ctrl+`` followed by exactly one ASCII letter."""
    lowered = name.lower()
    if not lowered.startswith(CTRL_PREFIX) or len(lowered) != len(CTRL_PREFIX) + 1:
        return False
    letter = lowered[-1]
    return "a" <= letter <= "z"


def ctrl_letter(name: str) -> str:
    if not is_ctrl_combo(name):
        raise UnknownKeyName(name)
    return name[len(CTRL_PREFIX):].lower()


def key_code(name: str) -> str:
    """Return the browser key code for a named key or a single character.

    Spaces map to the ``Space`` key so they survive key dispatch; any other
    single printable character is sent as itself.
    """
    if name in CHARACTER_KEYS:
        return CHARACTER_KEYS[name]
    if len(name) == 1 and name.isprintable():
        return name
    entry = NAMED_KEYS.get(name.lower())
    if entry is None:
        raise UnknownKeyName(name)
    return entry.code
