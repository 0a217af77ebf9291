"""Event log written next to the screenshots of a capture run.

One event per line: ``<iso timestamp>\\t<type>\\t<message>``. Tabs, newlines
and backslashes inside messages are escaped so every event stays on a single
line.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

EVENTS_HEADER = "# Capture Run Events"
_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"}


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


@dataclass(frozen=True)
class Event:
    timestamp: str
    event_type: str
    message: str = ""

    def to_line(self) -> str:
        return f"{self.timestamp}\t{self.event_type}\t{_escape(self.message)}\n"


class EventLogger:
    """Append-only, thread-safe log shared by the engine and the recorder."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.log_path.exists():
            self.log_path.write_text(f"{EVENTS_HEADER}\n", encoding="utf-8")
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}

    def log(self, event_type: str, message: str | None = None) -> Event:
        event = Event(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event_type=event_type,
            message=message or "",
        )
        with self._lock:
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_line())
            self._counts[event_type] = self._counts.get(event_type, 0) + 1
        return event

    def count(self, event_type: str) -> int:
        with self._lock:
            return self._counts.get(event_type, 0)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)
