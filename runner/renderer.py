"""Browser renderer that drives the ttyd terminal page with Playwright."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Protocol, Tuple, TypeVar

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from tape.keys import key_code

LOGGER = logging.getLogger(__name__)
DEFAULT_VIEWPORT = (1280, 720)
DEFAULT_CALL_TIMEOUT_SECONDS = 15.0
DEFAULT_OPEN_TIMEOUT_SECONDS = 30.0
TERMINAL_READY_SELECTOR = ".xterm-screen"
TERMINAL_CONTAINER_SELECTOR = "#terminal-container"

T = TypeVar("T")


class RendererError(RuntimeError):
    """Raised when the browser cannot dispatch input or take a screenshot."""


class Renderer(Protocol):
    def send_character(self, ch: str) -> None: ...

    def send_key(self, name: str) -> None: ...

    def send_control(self, letter: str) -> None: ...

    def capture_snapshot(self) -> bytes: ...


class PlaywrightRenderer:
    """Headless Chromium pointed at a ttyd URL.

    Playwright's sync API is bound to the thread that started it, so every
    call is funnelled through one worker thread. That lets the periodic
    capture thread and the action engine share the same page.
    """

    def __init__(
        self,
        url: str,
        *,
        viewport: Tuple[int, int] = DEFAULT_VIEWPORT,
        call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT_SECONDS,
        playwright_factory: Callable[[], Any] = sync_playwright,
    ) -> None:
        self.url = url
        self.viewport = viewport
        self.call_timeout = call_timeout
        self.open_timeout = open_timeout
        self._playwright_factory = playwright_factory
        self._executor: ThreadPoolExecutor | None = None
        self._playwright: Any = None
        self._browser: Any = None
        self._page: Any = None

    def __enter__(self) -> "PlaywrightRenderer":
        self.open()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        if self._executor is not None:
            return
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="capture-renderer"
        )
        try:
            self._call(
                self._open_page, "open terminal page", timeout=self.open_timeout
            )
        except RendererError:
            self.close()
            raise

    def close(self) -> None:
        if self._executor is None:
            return
        try:
            self._executor.submit(self._shutdown).result(timeout=self.call_timeout)
        except Exception as exc:  # pragma: no cover - best-effort shutdown
            LOGGER.warning("Browser shutdown failed: %s", exc)
        finally:
            self._executor.shutdown(wait=False)
            self._executor = None

    def send_character(self, ch: str) -> None:
        code = key_code(ch)
        if len(code) == 1:
            self._call(lambda: self._page.keyboard.type(code), f"type {ch!r}")
        else:
            self._call(lambda: self._page.keyboard.press(code), f"press {code}")

    def send_key(self, name: str) -> None:
        code = key_code(name)
        self._call(lambda: self._page.keyboard.press(code), f"press {code}")

    def send_control(self, letter: str) -> None:
        combo = f"Control+{letter.lower()}"
        self._call(lambda: self._page.keyboard.press(combo), f"press {combo}")

    def capture_snapshot(self) -> bytes:
        return self._call(
            lambda: self._page.locator(TERMINAL_CONTAINER_SELECTOR).screenshot(
                type="png"
            ),
            "capture screenshot",
        )

    def _open_page(self) -> None:
        width, height = self.viewport
        self._playwright = self._playwright_factory().start()
        self._browser = self._playwright.chromium.launch(headless=True)
        self._page = self._browser.new_page(
            viewport={"width": width, "height": height}
        )
        LOGGER.debug("Navigating browser to %s", self.url)
        self._page.goto(self.url)
        self._page.wait_for_selector(TERMINAL_READY_SELECTOR, state="visible")

    def _shutdown(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        self._page = None

    def _call(
        self,
        func: Callable[[], T],
        description: str,
        timeout: float | None = None,
    ) -> T:
        limit = timeout if timeout is not None else self.call_timeout
        if self._executor is None:
            raise RendererError(f"{description}: renderer is not open")
        future = self._executor.submit(func)
        try:
            return future.result(timeout=limit)
        except FutureTimeoutError as exc:
            raise RendererError(
                f"{description}: timed out after {limit}s"
            ) from exc
        except PlaywrightError as exc:
            raise RendererError(f"{description}: {exc}") from exc

