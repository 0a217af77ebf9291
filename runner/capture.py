"""Screenshot output and periodic capture for capture runs."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List

from runner.cancel import RunContext
from runner.events import EventLogger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from runner.renderer import Renderer

LOGGER = logging.getLogger(__name__)
SCREENSHOT_PREFIX = "screenshot"
EVENTS_LOG_NAME = "events.log"


class SnapshotError(RuntimeError):
    """Raised when a required (non-periodic) screenshot cannot be saved."""


@dataclass
class OutputPaths:
    """Resolved directories and files for a single capture run."""

    output_dir: Path
    events_log: Path


def create_output_paths(root: Path) -> OutputPaths:
    """Create the screenshot directory for a run."""
    output_dir = root.expanduser().resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    return OutputPaths(output_dir=output_dir, events_log=output_dir / EVENTS_LOG_NAME)


class SnapshotNamer:
    """Sequential ``screenshot_001.png`` names shared by every producer."""

    def __init__(self, directory: Path, prefix: str = SCREENSHOT_PREFIX) -> None:
        self.directory = directory
        self.prefix = prefix
        self._count = 0
        self._lock = threading.Lock()

    def next_path(self) -> Path:
        with self._lock:
            self._count += 1
            return self.directory / f"{self.prefix}_{self._count:03d}.png"

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


@dataclass
class ScreenshotRecorder:
    """Capture screenshots on demand and on a fixed cadence.

    The periodic thread is best-effort: failures are logged and kept in
    ``warnings``. Manual captures (start and end of a run) raise
    ``SnapshotError``. ``stop`` signals and joins the thread; once it has
    been called no periodic capture can begin.
    """

    renderer: "Renderer"
    output: OutputPaths
    context: RunContext
    interval_seconds: float | None = None
    event_logger: EventLogger | None = None
    namer: SnapshotNamer | None = None
    _captures: List[Path] = field(default_factory=list, init=False)
    _warnings: List[str] = field(default_factory=list, init=False)
    _thread: threading.Thread | None = field(default=None, init=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False)
    _capture_lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        if self.namer is None:
            self.namer = SnapshotNamer(self.output.output_dir)

    def start(self) -> None:
        if not self.interval_seconds or self.interval_seconds <= 0:
            LOGGER.info("Screenshot cadence disabled; start and end captures only")
            return
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._capture_loop,
            name="capture-interval-screenshots",
            daemon=True,
        )
        self._thread.start()
        LOGGER.debug("Interval screenshots every %.3fs", self.interval_seconds)

    def stop(self) -> None:
        with self._capture_lock:
            if not self._stop_event.is_set():
                self._stop_event.set()
                self._log_event("capture_stopped", f"{len(self._captures)} captured")
        if self._thread and self._thread.is_alive():
            self._thread.join()

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    @property
    def paths(self) -> List[Path]:
        with self._capture_lock:
            return list(self._captures)

    @property
    def warnings(self) -> List[str]:
        return list(self._warnings)

    def capture_now(self, label: str = "manual") -> Path:
        with self._capture_lock:
            try:
                return self._capture_once(label)
            except Exception as exc:
                raise SnapshotError(f"{label} screenshot: {exc}") from exc

    def _capture_loop(self) -> None:
        assert self.interval_seconds is not None
        while not self._stop_event.wait(self.interval_seconds):
            if self.context.cancelled:
                LOGGER.debug("Run cancelled; interval screenshots stopping")
                return
            with self._capture_lock:
                if self._stop_event.is_set():
                    return
                try:
                    self._capture_once("interval")
                except Exception as exc:
                    warning = f"interval screenshot failed: {exc}"
                    self._warnings.append(warning)
                    LOGGER.warning("Failed to capture interval screenshot: %s", exc)
                    self._log_event("capture_warning", warning)

    def _capture_once(self, label: str) -> Path:
        assert self.namer is not None
        data = self.renderer.capture_snapshot()
        output_path = self.namer.next_path()
        output_path.write_bytes(data)
        self._captures.append(output_path)
        self._log_event("screenshot", f"{label}:{output_path.name}")
        LOGGER.debug("Captured %s screenshot %s", label, output_path)
        return output_path

    def _log_event(self, event_type: str, message: str | None = None) -> None:
        if self.event_logger:
            self.event_logger.log(event_type, message)
