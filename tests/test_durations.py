"""Tests for command-line duration strings."""
from __future__ import annotations

from datetime import timedelta

import pytest

from tape.durations import parse_flag_duration


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("0", timedelta(0)),
        ("250ms", timedelta(milliseconds=250)),
        ("2s", timedelta(seconds=2)),
        ("1.5s", timedelta(milliseconds=1500)),
        (".5s", timedelta(milliseconds=500)),
        ("2m", timedelta(minutes=2)),
        ("1h30m", timedelta(minutes=90)),
        ("1m30s", timedelta(seconds=90)),
        ("1500us", timedelta(microseconds=1500)),
        ("2000ns", timedelta(microseconds=2)),
        ("+3s", timedelta(seconds=3)),
        ("-1s", timedelta(seconds=-1)),
    ],
)
def test_parse_flag_duration(text: str, expected: timedelta) -> None:
    assert parse_flag_duration(text) == expected


@pytest.mark.parametrize("text", ["", "500", "s", ".s", "1x", "1s ", "1 s", "-"])
def test_parse_flag_duration_rejects(text: str) -> None:
    with pytest.raises(ValueError, match="invalid duration"):
        parse_flag_duration(text)


def test_parse_flag_duration_out_of_range() -> None:
    with pytest.raises(ValueError, match="out of range"):
        parse_flag_duration("99999999999999h")
