"""Tests for the key table and the action model."""
from __future__ import annotations

import dataclasses
from datetime import timedelta

import pytest

from tape.actions import Ctrl, Key, Sleep, Type, describe, format_duration
from tape.keys import (
    NAMED_KEYS,
    VALID_KEYS_HINT,
    UnknownKeyName,
    ctrl_letter,
    is_ctrl_combo,
    is_named_key,
    key_code,
)


@pytest.mark.parametrize(
    ("name", "code"),
    [
        ("Enter", "Enter"),
        ("up", "ArrowUp"),
        ("PAGEDOWN", "PageDown"),
        (" ", "Space"),
        ("\n", "Enter"),
        ("a", "a"),
        ("%", "%"),
    ],
)
def test_key_code(name: str, code: str) -> None:
    assert key_code(name) == code


def test_key_code_rejects_unknown_names() -> None:
    with pytest.raises(UnknownKeyName):
        key_code("Hyper")


def test_every_named_key_has_a_hint_entry() -> None:
    for entry in NAMED_KEYS.values():
        assert entry.display in VALID_KEYS_HINT
        assert is_named_key(entry.display)


def test_key_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        NAMED_KEYS["f1"] = NAMED_KEYS["enter"]  # type: ignore[index]


@pytest.mark.parametrize(
    ("name", "expected"),
    [("Ctrl+C", True), ("ctrl+z", True), ("Ctrl+1", False), ("Ctrl+ab", False)],
)
def test_is_ctrl_combo(name: str, expected: bool) -> None:
    assert is_ctrl_combo(name) is expected


def test_ctrl_letter() -> None:
    assert ctrl_letter("Ctrl+D") == "d"
    with pytest.raises(UnknownKeyName):
        ctrl_letter("Ctrl+")


def test_actions_are_immutable() -> None:
    action = Type(text="hi")
    with pytest.raises(dataclasses.FrozenInstanceError):
        action.text = "bye"  # type: ignore[misc]


def test_key_repeat_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Key(name="Enter", repeat=0)


@pytest.mark.parametrize(
    ("value", "text"),
    [
        (timedelta(0), "0ms"),
        (timedelta(milliseconds=50), "50ms"),
        (timedelta(milliseconds=1500), "1500ms"),
        (timedelta(seconds=2), "2s"),
    ],
)
def test_format_duration(value: timedelta, text: str) -> None:
    assert format_duration(value) == text


def test_describe_labels() -> None:
    assert describe(Type(text="hi")) == "Type@50ms 'hi'"
    assert describe(Sleep(duration=timedelta(seconds=1))) == "Sleep 1s"
    assert describe(Key(name="Enter")) == "Enter"
    assert (
        describe(Key(name="Enter", delay=timedelta(milliseconds=200), repeat=3))
        == "Enter@200ms 3"
    )
    assert describe(Ctrl(key="d")) == "Ctrl+D"


def test_describe_truncates_long_text() -> None:
    label = describe(Type(text="x" * 60))

    assert label.endswith("...'")
    assert len(label) < 60
