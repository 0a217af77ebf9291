"""Tests for SCR_* configuration loading."""
from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from runner.config import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCREENSHOT_INTERVAL,
    DEFAULT_TIMEOUT,
    DEFAULT_TTYD_PORT,
    CaptureConfig,
    CaptureConfigError,
    load_capture_config,
)
from tape import Key, ParseError, Sleep, Type


def test_defaults() -> None:
    config = load_capture_config({"SCR_COMMAND": " bash "})

    assert config.command == "bash"
    assert config.script == ""
    assert config.output_dir == DEFAULT_OUTPUT_DIR
    assert config.screenshot_interval == DEFAULT_SCREENSHOT_INTERVAL
    assert config.ttyd_port == DEFAULT_TTYD_PORT
    assert config.timeout == DEFAULT_TIMEOUT
    assert config.verbose is False
    assert config.actions() == ()


def test_overrides_from_env(tmp_path) -> None:
    config = load_capture_config(
        {
            "SCR_COMMAND": "vim",
            "SCR_SCRIPT": "Type 'ihello' Escape",
            "SCR_OUTPUT_DIR": str(tmp_path / "shots"),
            "SCR_INTERVAL": "250ms",
            "SCR_PORT": "9000",
            "SCR_TIMEOUT": "2s",
            "SCR_VERBOSE": "yes",
        }
    )

    assert config.output_dir == Path(tmp_path / "shots")
    assert config.screenshot_interval == timedelta(milliseconds=250)
    assert config.ttyd_port == 9000
    assert config.timeout == timedelta(seconds=2)
    assert config.verbose is True
    assert config.actions() == (Type(text="ihello"), Key(name="Escape"))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2m", timedelta(minutes=2)),
        ("1.5s", timedelta(milliseconds=1500)),
        ("1m30s", timedelta(seconds=90)),
        ("1h", timedelta(hours=1)),
    ],
)
def test_flag_durations_accept_minutes_and_decimals(
    raw: str, expected: timedelta
) -> None:
    config = load_capture_config(
        {"SCR_COMMAND": "bash", "SCR_INTERVAL": raw, "SCR_TIMEOUT": raw}
    )

    assert config.screenshot_interval == expected
    assert config.timeout == expected


def test_negative_timeout_fails_validation() -> None:
    with pytest.raises(CaptureConfigError, match="timeout must be > 0"):
        load_capture_config({"SCR_COMMAND": "bash", "SCR_TIMEOUT": "-1s"})


def test_legacy_keypresses_become_actions() -> None:
    config = load_capture_config(
        {
            "SCR_COMMAND": "bash",
            "SCR_KEYPRESSES": "a,Enter",
            "SCR_DELAYS": "100ms",
        }
    )

    assert config.legacy_mode
    assert config.actions() == (
        Type(text="a", speed=timedelta(0)),
        Sleep(duration=timedelta(milliseconds=100)),
        Key(name="Enter"),
    )


@pytest.mark.parametrize(
    ("env", "message"),
    [
        ({}, "SCR_COMMAND is required"),
        ({"SCR_COMMAND": "  "}, "SCR_COMMAND is required"),
        ({"SCR_COMMAND": "bash", "SCR_PORT": "http"}, "SCR_PORT must be an integer"),
        ({"SCR_COMMAND": "bash", "SCR_PORT": "0"}, "greater than zero"),
        ({"SCR_COMMAND": "bash", "SCR_PORT": "70000"}, "between 1 and 65535"),
        ({"SCR_COMMAND": "bash", "SCR_INTERVAL": "500"}, "SCR_INTERVAL must be"),
        ({"SCR_COMMAND": "bash", "SCR_INTERVAL": "0ms"}, "screenshot-interval"),
        ({"SCR_COMMAND": "bash", "SCR_TIMEOUT": "soon"}, "SCR_TIMEOUT must be"),
        ({"SCR_COMMAND": "bash", "SCR_VERBOSE": "maybe"}, "SCR_VERBOSE"),
        (
            {"SCR_COMMAND": "bash", "SCR_SCRIPT": "Enter", "SCR_KEYPRESSES": "a"},
            "either a script or keypresses",
        ),
        (
            {"SCR_COMMAND": "bash", "SCR_KEYPRESSES": "a,b"},
            "SCR_DELAYS is required",
        ),
        (
            {"SCR_COMMAND": "bash", "SCR_KEYPRESSES": "a,b", "SCR_DELAYS": "1s,2s"},
            "delays length",
        ),
        ({"SCR_COMMAND": "bash", "SCR_DELAYS": "1s"}, "delays require keypresses"),
        ({"SCR_COMMAND": "bash", "SCR_KEYPRESSES": "F13"}, "SCR_KEYPRESSES"),
        (
            {"SCR_COMMAND": "bash", "SCR_KEYPRESSES": "a,b", "SCR_DELAYS": "1"},
            "SCR_DELAYS",
        ),
    ],
)
def test_invalid_config(env: dict[str, str], message: str) -> None:
    with pytest.raises(CaptureConfigError, match=message):
        load_capture_config(env)


def test_bad_script_surfaces_parse_error() -> None:
    config = load_capture_config({"SCR_COMMAND": "bash", "SCR_SCRIPT": "Foo"})

    with pytest.raises(ParseError):
        config.actions()


def test_validate_rejects_empty_command() -> None:
    with pytest.raises(CaptureConfigError):
        CaptureConfig(command="").validate()


def test_load_reads_process_environment(monkeypatch) -> None:
    for name in ("SCR_SCRIPT", "SCR_KEYPRESSES", "SCR_DELAYS", "SCR_INTERVAL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SCR_COMMAND", "top")
    monkeypatch.setenv("SCR_PORT", "7700")

    config = load_capture_config()

    assert config.command == "top"
    assert config.ttyd_port == 7700
