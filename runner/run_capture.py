"""Capture runner entrypoint: run a command in ttyd and screenshot a tape script.

Usage:
    python -m runner.run_capture [flags] COMMAND [SCRIPT]
"""
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Mapping, MutableMapping, Sequence

from runner.cancel import Cancelled, RunContext
from runner.capture import ScreenshotRecorder, SnapshotError, create_output_paths
from runner.config import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCREENSHOT_INTERVAL,
    DEFAULT_TIMEOUT,
    DEFAULT_TTYD_PORT,
    CaptureConfig,
    CaptureConfigError,
    load_capture_config,
)
from runner.engine import ActionEngine, RenderFailure
from runner.events import EventLogger
from runner.renderer import PlaywrightRenderer, RendererError
from runner.ttyd import TtydError, TtydServer
from tape.actions import Script, format_duration
from tape.parser import ParseError

LOGGER = logging.getLogger(__name__)
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
FINAL_SETTLE_SECONDS = 0.1
TTYD_LOG_NAME = "ttyd.log"
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130
DEPRECATED_FLAGS = ("command", "keypresses", "delays")


@dataclass
class CaptureResult:
    """Outcome of a capture run."""

    status: str
    runtime_seconds: float
    started_at: str
    finished_at: str
    output_dir: Path
    screenshots: List[Path] = field(default_factory=list)
    actions_total: int = 0
    actions_completed: int = 0
    error: str | None = None
    cancel_reason: str | None = None
    warnings: List[str] = field(default_factory=list)
    event_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "pass"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scr",
        description="Capture screenshots of terminal interactions.",
        epilog=(
            "Examples:\n"
            "  scr bash\n"
            "  scr bash \"Type 'echo hello' Enter\""
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command_arg", nargs="?", metavar="COMMAND")
    parser.add_argument("script_arg", nargs="?", metavar="SCRIPT")
    parser.add_argument(
        "-o",
        "--out",
        help=f"Directory to save screenshots (default {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "-i",
        "--interval",
        help=(
            "Interval between screenshots "
            f"(default {format_duration(DEFAULT_SCREENSHOT_INTERVAL)})"
        ),
    )
    parser.add_argument(
        "-t",
        "--timeout",
        help=(
            "Timeout for the entire operation "
            f"(default {format_duration(DEFAULT_TIMEOUT)})"
        ),
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        help=f"Port for the ttyd server (default {DEFAULT_TTYD_PORT})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )
    # Deprecated flag interface, kept for older wrappers.
    parser.add_argument("--command", help=argparse.SUPPRESS)
    parser.add_argument("--keypresses", help=argparse.SUPPRESS)
    parser.add_argument("--delays", help=argparse.SUPPRESS)
    parser.add_argument("--output-dir", help=argparse.SUPPRESS)
    parser.add_argument("--screenshot-interval", help=argparse.SUPPRESS)
    parser.add_argument("--ttyd-port", type=int, help=argparse.SUPPRESS)
    return parser.parse_args(argv)


def _deprecated_flags_used(args: argparse.Namespace) -> bool:
    return any(getattr(args, name, None) for name in DEPRECATED_FLAGS)


def apply_cli_overrides(
    args: argparse.Namespace, env: MutableMapping[str, str] | None = None
) -> None:
    """Write CLI flags into the ``SCR_*`` environment read by the config."""
    env = os.environ if env is None else env
    if _deprecated_flags_used(args):
        if args.command_arg or args.script_arg:
            raise CaptureConfigError(
                "cannot use both positional arguments and deprecated flags: use "
                "either 'scr COMMAND [SCRIPT]' or deprecated flags, not both"
            )
        LOGGER.warning(
            "Using deprecated flags. Please migrate to: scr [flags] COMMAND [SCRIPT]"
        )
        if args.command:
            env["SCR_COMMAND"] = args.command
        if args.keypresses:
            env["SCR_KEYPRESSES"] = args.keypresses
        if args.delays:
            env["SCR_DELAYS"] = args.delays
    else:
        if args.command_arg:
            env["SCR_COMMAND"] = args.command_arg
        if args.script_arg:
            env["SCR_SCRIPT"] = args.script_arg
    out = args.out or args.output_dir
    if out:
        env["SCR_OUTPUT_DIR"] = out
    interval = args.interval or args.screenshot_interval
    if interval:
        env["SCR_INTERVAL"] = interval
    if args.timeout:
        env["SCR_TIMEOUT"] = args.timeout
    port = args.port if args.port is not None else args.ttyd_port
    if port is not None:
        env["SCR_PORT"] = str(port)
    if args.verbose:
        env["SCR_VERBOSE"] = "1"


def _verbose_enabled(args: argparse.Namespace | None, env: Mapping[str, str]) -> bool:
    if args and getattr(args, "verbose", False):
        return True
    raw = env.get("SCR_VERBOSE", "")
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


@contextmanager
def _cancel_on_signals(context: RunContext) -> Iterator[Dict[str, str]]:
    """Cancel ``context`` on SIGINT/SIGTERM for the duration of the block."""
    received: Dict[str, str] = {}

    def _handler(signum, _frame) -> None:
        name = signal.Signals(signum).name
        received["signal"] = name
        LOGGER.warning("Received signal %s, shutting down gracefully...", name)
        context.cancel(f"interrupted by signal: {name}")

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _handler)
        except ValueError:  # pragma: no cover - not on the main thread
            LOGGER.debug("Signal handlers unavailable outside the main thread")
    try:
        yield received
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def execute_capture(
    config: CaptureConfig,
    context: RunContext,
    actions: Script,
    *,
    server_factory: Callable[..., TtydServer] = TtydServer,
    renderer_factory: Callable[[str], PlaywrightRenderer] = PlaywrightRenderer,
) -> CaptureResult:
    """Run the whole workflow; ttyd and the browser are always torn down."""
    paths = create_output_paths(config.output_dir)
    LOGGER.info("Screenshots stored in %s", paths.output_dir)
    event_logger = EventLogger(paths.events_log)
    server = server_factory(
        config.command,
        config.ttyd_port,
        stderr_log=paths.output_dir / TTYD_LOG_NAME,
    )
    renderer: PlaywrightRenderer | None = None
    recorder: ScreenshotRecorder | None = None
    engine: ActionEngine | None = None

    status = "fail"
    error_message: str | None = None
    cancel_reason: str | None = None
    started_at = datetime.now(timezone.utc)
    start = time.monotonic()
    try:
        server.start(context)
        event_logger.log("ttyd_ready", server.url)
        renderer = renderer_factory(server.url)
        renderer.open()
        recorder = ScreenshotRecorder(
            renderer,
            paths,
            context,
            interval_seconds=config.screenshot_interval.total_seconds(),
            event_logger=event_logger,
        )
        LOGGER.debug("Capturing initial screenshot")
        recorder.capture_now("initial")
        recorder.start()

        engine = ActionEngine(
            renderer, context, recorder=recorder, event_logger=event_logger
        )
        engine.run(actions)

        recorder.stop()
        context.wait(FINAL_SETTLE_SECONDS)
        LOGGER.debug("Capturing final screenshot")
        recorder.capture_now("final")
        status = "pass"
    except Cancelled as exc:
        status = "cancelled"
        cancel_reason = exc.reason
        error_message = exc.reason
        LOGGER.warning("Capture stopped: %s", exc.reason)
    except (TtydError, RendererError, RenderFailure, SnapshotError) as exc:
        error_message = str(exc)
        LOGGER.error("Capture failed: %s", exc)
    finally:
        if recorder is not None:
            recorder.stop()
        if renderer is not None:
            renderer.close()
        server.stop()
    finished_at = datetime.now(timezone.utc)
    event_logger.log("run_finished", f"{status}:{error_message or ''}")
    return CaptureResult(
        status=status,
        runtime_seconds=round(time.monotonic() - start, 2),
        started_at=started_at.isoformat(),
        finished_at=finished_at.isoformat(),
        output_dir=paths.output_dir,
        screenshots=recorder.paths if recorder else [],
        actions_total=len(actions),
        actions_completed=engine.completed if engine else 0,
        error=error_message,
        cancel_reason=cancel_reason,
        warnings=recorder.warnings if recorder else [],
        event_counts=event_logger.counts(),
    )


def _log_config(config: CaptureConfig, actions: Script) -> None:
    LOGGER.debug("Configuration validated successfully")
    LOGGER.debug("Command: %s", config.command)
    if config.legacy_mode:
        LOGGER.debug("Keypresses: %s", ", ".join(config.keypresses))
    elif config.script:
        LOGGER.debug("Script: %s", config.script)
    LOGGER.debug("Actions: %d", len(actions))
    LOGGER.debug("Output Directory: %s", config.output_dir)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(_verbose_enabled(args, os.environ))
    try:
        apply_cli_overrides(args)
        config = load_capture_config()
        actions = config.actions()
    except ParseError as exc:
        LOGGER.error("parse script: %s", exc)
        return EXIT_FAILURE
    except CaptureConfigError as exc:
        LOGGER.error("validate config: %s", exc)
        return EXIT_FAILURE
    _log_config(config, actions)

    context = RunContext(timeout=config.timeout)
    try:
        with _cancel_on_signals(context) as received:
            result = execute_capture(config, context, actions)
    except OSError as exc:
        LOGGER.error("output directory: %s", exc)
        print(f"Capture failed: output directory: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    if result.succeeded:
        print("Capture completed successfully")
        return EXIT_OK
    if received:
        print(f"Interrupted by signal: {received['signal']}", file=sys.stderr)
        return EXIT_INTERRUPTED
    print(f"Capture failed: {result.error}", file=sys.stderr)
    return EXIT_FAILURE


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as exc:  # pragma: no cover - last-resort logging
        print(f"Runner crashed: {exc}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(EXIT_FAILURE)
