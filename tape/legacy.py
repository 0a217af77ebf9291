"""Flat keypress lists from the deprecated ``--keypresses``/``--delays`` flags.

Legacy input is normalised into the regular action model so the engine only
has one execution path.
"""
from __future__ import annotations

from datetime import timedelta
from typing import List, Sequence

from tape.actions import Action, Ctrl, Key, Script, Sleep, Type
from tape.keys import ctrl_letter, is_ctrl_combo, is_named_key
from tape.durations import parse_flag_duration


class LegacyInputError(ValueError):
    """Raised when legacy keypress or delay lists are invalid."""


def _is_alphanumeric(key: str) -> bool:
    return len(key) == 1 and key.isascii() and key.isalnum()


def is_valid_keypress(key: str) -> bool:
    return _is_alphanumeric(key) or is_named_key(key) or is_ctrl_combo(key)


def parse_keypresses(raw: str) -> List[str]:
    """Split a comma-separated keypress string and validate every key."""
    if not raw:
        raise LegacyInputError("keypress string must not be empty")
    keys = [part.strip() for part in raw.split(",")]
    for key in keys:
        if not is_valid_keypress(key):
            raise LegacyInputError(f"invalid key: {key!r}")
    return keys


def parse_delays(raw: str) -> List[timedelta]:
    if not raw or not raw.strip():
        return []
    delays: List[timedelta] = []
    for part in raw.split(","):
        try:
            delays.append(parse_flag_duration(part.strip()))
        except ValueError as exc:
            raise LegacyInputError(f"invalid delay {part.strip()!r}") from exc
    return delays


def _keypress_action(key: str) -> Action:
    if _is_alphanumeric(key):
        return Type(text=key, speed=timedelta(0))
    if is_ctrl_combo(key):
        return Ctrl(key=ctrl_letter(key))
    if is_named_key(key):
        return Key(name=key)
    raise LegacyInputError(f"invalid key: {key!r}")


def actions_from_keypresses(
    keys: Sequence[str], delays: Sequence[timedelta]
) -> Script:
    """Build actions where ``delays[i]`` elapses before ``keys[i + 1]``."""
    if not keys:
        raise LegacyInputError("keypresses must not be empty")
    if len(delays) != len(keys) - 1:
        raise LegacyInputError(
            "delays length must be equal to keypresses length - 1 "
            f"(got {len(delays)} delays for {len(keys)} keypresses)"
        )
    actions: List[Action] = []
    for index, key in enumerate(keys):
        if index > 0:
            actions.append(Sleep(duration=delays[index - 1]))
        actions.append(_keypress_action(key))
    return tuple(actions)
