"""Lifecycle of the ttyd process that shares the captured terminal."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import time
from pathlib import Path
from typing import IO, List, Mapping

import requests

from runner.cancel import RunContext

LOGGER = logging.getLogger(__name__)
TTYD_BINARY = "ttyd"
TTYD_INSTALL_HINT = (
    "Install ttyd and ensure it's on PATH: https://github.com/tsl0922/ttyd"
)
READINESS_TIMEOUT_SECONDS = 5.0
READINESS_POLL_SECONDS = 0.1
PROBE_TIMEOUT_SECONDS = 1.0
SHUTDOWN_TIMEOUT_SECONDS = 5.0
STDERR_EXCERPT_CHARS = 2000
CLIENT_OPTIONS = (
    "rendererType=canvas",
    "disableResizeOverlay=true",
    "enableSixel=true",
    "customGlyphs=true",
)
TERMINAL_ENV = {
    "TERM": "xterm-256color",
    "COLORTERM": "truecolor",
    "PS1": "> ",
}


class TtydError(RuntimeError):
    """Raised when ttyd cannot be started or does not become ready."""


class TtydServer:
    """Run ``command`` under ttyd on 127.0.0.1 and wait until it serves.

    ttyd's stderr goes to ``stderr_log`` when given (a temporary file
    otherwise) so it can be quoted when the daemon fails to come up.
    """

    def __init__(
        self,
        command: str,
        port: int,
        *,
        popen_cls=subprocess.Popen,
        session: requests.Session | None = None,
        which=shutil.which,
        readiness_timeout: float = READINESS_TIMEOUT_SECONDS,
        stderr_log: Path | None = None,
    ) -> None:
        self.command = command
        self.port = port
        self.readiness_timeout = readiness_timeout
        self.stderr_log = stderr_log
        self._popen_cls = popen_cls
        self._session = session or requests.Session()
        self._which = which
        self._process: subprocess.Popen | None = None
        self._stderr: IO[bytes] | None = None

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def validate(self) -> None:
        if not self.command or not self.command.strip():
            raise TtydError("command must not be empty")
        if not 1 <= self.port <= 65535:
            raise TtydError(f"port must be between 1 and 65535, got {self.port}")

    def build_argv(self, binary: str) -> List[str]:
        argv = [binary, "-p", str(self.port), "--interface", "127.0.0.1"]
        for option in CLIENT_OPTIONS:
            argv.extend(["-t", option])
        argv.extend(["--writable", "bash", "--norc", "--noprofile", "-c"])
        argv.append(self.command)
        return argv

    def build_env(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        env = dict(os.environ if base is None else base)
        env.update(TERMINAL_ENV)
        return env

    def start(self, context: RunContext) -> None:
        """Spawn ttyd and block until its HTTP endpoint answers."""
        self.validate()
        binary = self._which(TTYD_BINARY)
        if not binary:
            raise TtydError(f"ttyd binary not found. {TTYD_INSTALL_HINT}")
        argv = self.build_argv(binary)
        LOGGER.info("Starting ttyd on port %s: %s", self.port, self.command)
        try:
            self._stderr = self._open_stderr()
        except OSError as exc:
            raise TtydError(f"open ttyd log: {exc}") from exc
        try:
            self._process = self._popen_cls(
                argv,
                env=self.build_env(),
                stdout=subprocess.DEVNULL,
                stderr=self._stderr,
            )
        except OSError as exc:
            self._close_stderr()
            raise TtydError(f"start ttyd process: {exc}") from exc
        try:
            self._wait_until_ready(context)
        except BaseException:
            self.stop()
            raise

    def stop(self) -> None:
        """SIGTERM, wait up to five seconds, then kill."""
        process = self._process
        self._process = None
        try:
            if process is None or process.poll() is not None:
                return
            LOGGER.debug("Stopping ttyd (pid %s)", getattr(process, "pid", "?"))
            try:
                process.terminate()
            except ProcessLookupError:
                return
            try:
                process.wait(timeout=SHUTDOWN_TIMEOUT_SECONDS)
            except subprocess.TimeoutExpired:
                LOGGER.warning("ttyd unresponsive after SIGTERM; killing")
                process.kill()
                process.wait()
        finally:
            self._close_stderr()

    def _wait_until_ready(self, context: RunContext) -> None:
        deadline = time.monotonic() + self.readiness_timeout
        while True:
            context.check()
            process = self._process
            if process is not None and process.poll() is not None:
                raise TtydError(
                    f"ttyd exited with code {process.returncode}. "
                    f"stderr: {self._stderr_excerpt()}"
                )
            if time.monotonic() >= deadline:
                raise TtydError(
                    "ttyd health check timeout after "
                    f"{self.readiness_timeout:g} seconds. "
                    f"stderr: {self._stderr_excerpt()}"
                )
            if self._endpoint_ready():
                LOGGER.debug("ttyd ready at %s", self.url)
                return
            context.wait(READINESS_POLL_SECONDS)

    def _endpoint_ready(self) -> bool:
        try:
            response = self._session.get(self.url, timeout=PROBE_TIMEOUT_SECONDS)
        except requests.RequestException:
            return False
        try:
            return response.status_code != 404
        finally:
            response.close()

    def _open_stderr(self) -> IO[bytes]:
        if self.stderr_log is None:
            return tempfile.TemporaryFile()
        self.stderr_log.parent.mkdir(parents=True, exist_ok=True)
        return self.stderr_log.open("w+b")

    def _stderr_excerpt(self) -> str:
        handle = self._stderr
        if handle is None:
            return ""
        try:
            handle.flush()
            handle.seek(0)
            raw = handle.read()
        except (OSError, ValueError):
            return ""
        text = raw.decode("utf-8", errors="replace").strip()
        return text[-STDERR_EXCERPT_CHARS:]

    def _close_stderr(self) -> None:
        handle = self._stderr
        self._stderr = None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as exc:  # pragma: no cover - filesystem safety
            LOGGER.debug("Unable to close ttyd stderr log: %s", exc)
