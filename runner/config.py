"""Configuration helpers for capture runs."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import List, Mapping

from tape.actions import Script
from tape.legacy import (
    LegacyInputError,
    actions_from_keypresses,
    parse_delays,
    parse_keypresses,
)
from tape.durations import parse_flag_duration
from tape.parser import parse

LOGGER = logging.getLogger(__name__)
DEFAULT_OUTPUT_DIR = Path("./screenshots")
DEFAULT_SCREENSHOT_INTERVAL = timedelta(milliseconds=500)
DEFAULT_TIMEOUT = timedelta(seconds=60)
DEFAULT_TTYD_PORT = 7681


class CaptureConfigError(Exception):
    """Raised when capture configuration is invalid."""


@dataclass
class CaptureConfig:
    command: str
    script: str = ""
    keypresses: List[str] = field(default_factory=list)
    delays: List[timedelta] = field(default_factory=list)
    output_dir: Path = DEFAULT_OUTPUT_DIR
    screenshot_interval: timedelta = DEFAULT_SCREENSHOT_INTERVAL
    ttyd_port: int = DEFAULT_TTYD_PORT
    timeout: timedelta = DEFAULT_TIMEOUT
    verbose: bool = False

    @property
    def legacy_mode(self) -> bool:
        return bool(self.keypresses)

    def validate(self) -> None:
        if not self.command or not self.command.strip():
            raise CaptureConfigError("command must be non-empty")
        if not str(self.output_dir).strip():
            raise CaptureConfigError("output-dir must be non-empty")
        if not 1 <= self.ttyd_port <= 65535:
            raise CaptureConfigError("ttyd-port must be between 1 and 65535")
        if self.screenshot_interval <= timedelta(0):
            raise CaptureConfigError("screenshot-interval must be > 0")
        if self.timeout <= timedelta(0):
            raise CaptureConfigError("timeout must be > 0")
        if self.script and self.keypresses:
            raise CaptureConfigError("use either a script or keypresses, not both")
        if self.delays and not self.keypresses:
            raise CaptureConfigError("delays require keypresses")
        if self.keypresses and len(self.delays) != len(self.keypresses) - 1:
            raise CaptureConfigError(
                "delays length must be equal to keypresses length - 1"
            )

    def actions(self) -> Script:
        """Parsed script, normalised legacy keypresses, or no actions."""
        if self.script:
            return parse(self.script)
        if self.keypresses:
            try:
                return actions_from_keypresses(self.keypresses, self.delays)
            except LegacyInputError as exc:
                raise CaptureConfigError(str(exc)) from exc
        return ()


def load_capture_config(env: Mapping[str, str] | None = None) -> CaptureConfig:
    """Load ``SCR_*`` environment variables into a CaptureConfig."""
    env = os.environ if env is None else env

    command = _require_non_empty(env.get("SCR_COMMAND"), "SCR_COMMAND")
    script = env.get("SCR_SCRIPT") or ""
    keypresses = _parse_keypresses(env.get("SCR_KEYPRESSES"))
    delays = _parse_delays(env.get("SCR_DELAYS"))
    if len(keypresses) > 1 and not delays:
        raise CaptureConfigError(
            "SCR_DELAYS is required for multiple keypresses "
            "(comma-separated list, e.g. '100ms,200ms')"
        )
    output_dir = _parse_path(env.get("SCR_OUTPUT_DIR"), DEFAULT_OUTPUT_DIR)
    interval = _parse_duration(
        env.get("SCR_INTERVAL"), DEFAULT_SCREENSHOT_INTERVAL, "SCR_INTERVAL"
    )
    port = _parse_positive_int(env.get("SCR_PORT"), DEFAULT_TTYD_PORT, "SCR_PORT")
    timeout = _parse_duration(env.get("SCR_TIMEOUT"), DEFAULT_TIMEOUT, "SCR_TIMEOUT")
    verbose = _parse_optional_bool(env.get("SCR_VERBOSE"), "SCR_VERBOSE") or False

    config = CaptureConfig(
        command=command,
        script=script,
        keypresses=keypresses,
        delays=delays,
        output_dir=output_dir,
        screenshot_interval=interval,
        ttyd_port=port,
        timeout=timeout,
        verbose=verbose,
    )
    config.validate()
    LOGGER.debug("Loaded capture config for command %r", command)
    return config


def _parse_keypresses(raw_value: str | None) -> List[str]:
    if raw_value is None or raw_value.strip() == "":
        return []
    try:
        return parse_keypresses(raw_value)
    except LegacyInputError as exc:
        raise CaptureConfigError(f"SCR_KEYPRESSES: {exc}") from exc


def _parse_delays(raw_value: str | None) -> List[timedelta]:
    try:
        return parse_delays(raw_value or "")
    except LegacyInputError as exc:
        raise CaptureConfigError(f"SCR_DELAYS: {exc}") from exc


def _parse_duration(
    raw_value: str | None, default: timedelta, env_name: str
) -> timedelta:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        return parse_flag_duration(raw_value.strip())
    except ValueError as exc:
        raise CaptureConfigError(
            f"{env_name} must be a duration such as '500ms' or '1m30s'"
        ) from exc


def _parse_path(raw_value: str | None, default: Path) -> Path:
    if raw_value is None or raw_value.strip() == "":
        return default
    return Path(raw_value.strip()).expanduser()


def _parse_positive_int(raw_value: str | None, default: int, env_name: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise CaptureConfigError(f"{env_name} must be an integer") from exc
    if value <= 0:
        raise CaptureConfigError(f"{env_name} must be greater than zero")
    return value


def _parse_optional_bool(raw_value: str | None, env_name: str) -> bool | None:
    if raw_value is None or raw_value.strip() == "":
        return None
    normalized = raw_value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise CaptureConfigError(f"{env_name} must be a boolean (0/1, true/false)")


def _require_non_empty(raw_value: str | None, env_name: str) -> str:
    if not raw_value or not raw_value.strip():
        raise CaptureConfigError(f"{env_name} is required")
    return raw_value.strip()
