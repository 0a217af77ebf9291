"""Sequential execution of tape actions against a renderer."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence

from runner.cancel import RunContext
from runner.events import EventLogger
from tape.actions import Action, Ctrl, Key, Sleep, Type, describe

if TYPE_CHECKING:  # pragma: no cover - typing only
    from runner.capture import ScreenshotRecorder
    from runner.renderer import Renderer

LOGGER = logging.getLogger(__name__)


class RenderFailure(RuntimeError):
    """A renderer call failed while executing an action."""

    def __init__(self, index: int, action: Action, message: str) -> None:
        super().__init__(f"action {index} ({describe(action)}): {message}")
        self.index = index
        self.action = action


class ActionEngine:
    """Run actions strictly in order, one renderer call at a time.

    Every pause goes through ``RunContext.wait`` so cancellation or the run
    deadline surfaces as ``Cancelled`` mid-action. When a renderer call
    fails, the periodic recorder is stopped and joined before
    ``RenderFailure`` propagates.
    """

    def __init__(
        self,
        renderer: "Renderer",
        context: RunContext,
        *,
        recorder: "ScreenshotRecorder | None" = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        self.renderer = renderer
        self.context = context
        self.recorder = recorder
        self.event_logger = event_logger
        self.completed = 0

    def run(self, actions: Sequence[Action]) -> None:
        LOGGER.info("Executing %d action(s)", len(actions))
        for index, action in enumerate(actions):
            self.context.check()
            LOGGER.debug("Action %d: %s", index, describe(action))
            self._log_event("action", f"{index}:{describe(action)}")
            self._execute(index, action)
            self.completed += 1

    def _execute(self, index: int, action: Action) -> None:
        if isinstance(action, Type):
            self._execute_type(index, action)
        elif isinstance(action, Sleep):
            self.context.wait(action.duration)
        elif isinstance(action, Key):
            self._execute_key(index, action)
        elif isinstance(action, Ctrl):
            self._dispatch(
                index,
                action,
                lambda: self.renderer.send_control(action.key),
                f"send Ctrl+{action.key}",
            )
        else:
            raise TypeError(f"unsupported action: {action!r}")

    def _execute_type(self, index: int, action: Type) -> None:
        for ch in action.text:
            self.context.check()
            LOGGER.debug("Sending character %r", ch)
            self._dispatch(
                index,
                action,
                lambda: self.renderer.send_character(ch),
                f"send character {ch!r}",
            )
            if action.speed:
                self.context.wait(action.speed)
        if action.delay:
            LOGGER.debug("Waiting %s after action %d", action.delay, index)
            self.context.wait(action.delay)

    def _execute_key(self, index: int, action: Key) -> None:
        for attempt in range(1, action.repeat + 1):
            self.context.check()
            LOGGER.debug(
                "Sending key %s (repeat %d/%d)", action.name, attempt, action.repeat
            )
            self._dispatch(
                index,
                action,
                lambda: self.renderer.send_key(action.name),
                f"send key {action.name!r} (repeat {attempt})",
            )
        if action.delay:
            LOGGER.debug("Waiting %s after action %d", action.delay, index)
            self.context.wait(action.delay)

    def _dispatch(
        self,
        index: int,
        action: Action,
        call: Callable[[], None],
        description: str,
    ) -> None:
        try:
            call()
        except Exception as exc:
            if self.recorder is not None:
                self.recorder.stop()
            self._log_event("render_failure", f"{index}:{description}: {exc}")
            raise RenderFailure(index, action, f"{description}: {exc}") from exc

    def _log_event(self, event_type: str, message: str | None = None) -> None:
        if self.event_logger:
            self.event_logger.log(event_type, message)
