"""Cancellation and deadline handling shared by the capture threads."""
from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Union

Seconds = Union[float, timedelta]

REASON_CANCELLED = "cancelled"
REASON_DEADLINE = "deadline exceeded"


class Cancelled(Exception):
    """Raised when a run is stopped by cancellation or by its deadline."""

    def __init__(self, reason: str = REASON_CANCELLED) -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def deadline_exceeded(self) -> bool:
        return self.reason == REASON_DEADLINE


def _to_seconds(value: Seconds) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class RunContext:
    """Cancellation signal with an optional deadline.

    One context governs the action sequence and the periodic capture
    thread. ``wait`` is the only blocking primitive the engine uses, so a
    cancel or an elapsed deadline interrupts any pause immediately.
    """

    def __init__(self, timeout: Seconds | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._reason: str | None = None
        self._deadline: float | None = None
        if timeout is not None:
            self._deadline = time.monotonic() + _to_seconds(timeout)

    def cancel(self, reason: str = REASON_CANCELLED) -> None:
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    @property
    def reason(self) -> str | None:
        self._check_deadline()
        return self._reason

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        reason = self.reason
        if reason is not None:
            raise Cancelled(reason)

    def wait(self, duration: Seconds) -> None:
        """Sleep for ``duration`` unless cancelled first; raise Cancelled then."""
        self.check()
        seconds = min(_to_seconds(duration), threading.TIMEOUT_MAX)
        if seconds <= 0:
            return
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            self._check_deadline(force=True)
            self.check()
            return
        if self._event.wait(seconds):
            self.check()

    def _check_deadline(self, force: bool = False) -> None:
        if self._deadline is None or self._event.is_set():
            return
        if force or time.monotonic() >= self._deadline:
            self.cancel(REASON_DEADLINE)
