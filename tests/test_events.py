"""Tests for the run event log."""
from __future__ import annotations

import threading

from runner.events import EVENTS_HEADER, Event, EventLogger


def _event_lines(log_path) -> list[list[str]]:
    lines = log_path.read_text(encoding="utf-8").splitlines()
    return [line.split("\t") for line in lines if not line.startswith("#")]


def test_event_log_header_and_escaping(tmp_path) -> None:
    log_path = tmp_path / "out" / "events.log"
    logger = EventLogger(log_path)

    logger.log("action", "0:Type@50ms 'a\tb'\nnext")
    logger.log("run_finished")

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == EVENTS_HEADER
    assert len(lines) == 3
    _, event_type, message = lines[1].split("\t")
    assert event_type == "action"
    assert message == "0:Type@50ms 'a\\tb'\\nnext"
    assert lines[2].endswith("\trun_finished\t")


def test_backslashes_are_escaped(tmp_path) -> None:
    log_path = tmp_path / "events.log"
    event = EventLogger(log_path).log("render_failure", "C:\\tmp\\new\rline")

    assert event.message == "C:\\tmp\\new\rline"
    assert _event_lines(log_path)[0][2] == "C:\\\\tmp\\\\new\\rline"


def test_event_to_line() -> None:
    event = Event("2024-01-01T00:00:00+00:00", "capture_warning", "boom")

    assert event.to_line() == "2024-01-01T00:00:00+00:00\tcapture_warning\tboom\n"


def test_existing_log_is_appended(tmp_path) -> None:
    log_path = tmp_path / "events.log"
    EventLogger(log_path).log("first")

    EventLogger(log_path).log("second")

    text = log_path.read_text(encoding="utf-8")
    assert text.count(EVENTS_HEADER) == 1
    assert [fields[1] for fields in _event_lines(log_path)] == ["first", "second"]


def test_event_counts_are_thread_safe(tmp_path) -> None:
    logger = EventLogger(tmp_path / "events.log")

    def _emit() -> None:
        for _ in range(50):
            logger.log("screenshot", "interval")

    threads = [threading.Thread(target=_emit) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert logger.count("screenshot") == 200
    assert logger.counts() == {"screenshot": 200}
    assert logger.count("missing") == 0
    assert len(_event_lines(tmp_path / "events.log")) == 200
