"""Supervisor for the node.js runtime process: start, handshake, crash detection, teardown."""

from __future__ import annotations

import os
import queue
import shutil
import subprocess
import threading
import time
from collections import deque
from typing import IO, TYPE_CHECKING

from loguru import logger

from nodebridge.config.schema import TransportConfig
from nodebridge.runtime.types import (
    NEVER_STARTED,
    RUNNING,
    ProcessStatus,
    ProcessStatusKind,
    ProvisionedRuntime,
    RuntimeState,
    StreamEvent,
)
from nodebridge.utils.exceptions import BridgeClosedError, StartupError

if TYPE_CHECKING:
    from nodebridge.runtime.transports import Transport


class ProcessSupervisor:
    """Owns exactly one runtime process handle and the working directory it runs in.

    Standard output and standard error are pumped by daemon reader threads into
    an event queue, so waiting for the runtime is a blocking queue read instead
    of polling stream availability. Waits wake up every `poll_interval_seconds`
    to observe the shutdown event.
    """

    def __init__(
        self,
        runtime: ProvisionedRuntime,
        transport: "Transport",
        settings: TransportConfig | None = None,
        stop_event: threading.Event | None = None,
    ):
        self.runtime = runtime
        self.transport = transport
        self.settings = settings or TransportConfig()
        self.stop_event = stop_event or threading.Event()
        self.state = RuntimeState.ABSENT
        self.port: int | None = None
        self._proc: subprocess.Popen[str] | None = None
        self._events: queue.Queue[StreamEvent] = queue.Queue()
        self._pushback: deque[StreamEvent] = deque()
        self._terminated = False
        self._lock = threading.Lock()

    @property
    def working_dir(self):
        return self.runtime.working_dir

    @property
    def process(self) -> subprocess.Popen[str] | None:
        return self._proc

    def command(self, *args: str) -> list[str]:
        return [str(self.runtime.executable), self.runtime.bootstrap.name, *args]

    def environment(self) -> dict[str, str]:
        env = os.environ.copy()
        env["NODE_PATH"] = "."
        env.setdefault("NODE_NO_WARNINGS", "1")
        return env

    def status(self) -> ProcessStatus:
        proc = self._proc
        if proc is None:
            return NEVER_STARTED
        code = proc.poll()
        if code is None:
            return RUNNING
        return ProcessStatus(ProcessStatusKind.EXITED, code)

    def ensure_running(self) -> None:
        """Start the runtime (and complete its handshake) unless it is already alive."""
        if self._terminated:
            raise BridgeClosedError()
        if not self.transport.persistent:
            self.state = RuntimeState.READY
            return
        status = self.status()
        if status.running and self.state is not RuntimeState.FAILED:
            return
        if status.kind is ProcessStatusKind.EXITED:
            logger.warning("node.js process exited with code {}; restarting", status.exit_code)
        elif status.running:
            logger.warning("node.js process failed during the previous call; restarting")
        self.kill()
        self._spawn()
        try:
            self.transport.handshake(self)
        except BaseException:
            self.state = RuntimeState.FAILED
            self.kill()
            raise
        self.state = RuntimeState.READY
        logger.debug("node.js process {} ready in {}", self._proc.pid if self._proc else "?", self.working_dir)

    def _spawn(self) -> None:
        self.state = RuntimeState.STARTING
        self.port = None
        self._events = queue.Queue()
        self._pushback.clear()
        try:
            self._proc = subprocess.Popen(
                self.command(),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(self.working_dir),
                env=self.environment(),
                bufsize=1,
            )
        except OSError as e:
            self.state = RuntimeState.FAILED
            self._proc = None
            raise StartupError(f"Unable to start node.js process: {e}") from e
        events = self._events
        threading.Thread(target=self._pump, args=(self._proc.stdout, "stdout", events), daemon=True).start()
        threading.Thread(target=self._pump, args=(self._proc.stderr, "stderr", events), daemon=True).start()

    @staticmethod
    def _pump(stream: IO[str] | None, channel: str, events: queue.Queue[StreamEvent]) -> None:
        if stream is None:
            return
        try:
            for line in stream:
                events.put(StreamEvent(channel, line.rstrip("\r\n")))
        except (OSError, ValueError):
            pass
        if channel == "stdout":
            events.put(StreamEvent("exit"))

    def post_event(self, event: StreamEvent) -> None:
        self._events.put(event)

    def next_event(self, deadline: float | None = None) -> StreamEvent | None:
        """Wait for the next stream event; None once `deadline` (monotonic) has passed.

        Raises BridgeClosedError when the shutdown event is set while waiting.
        """
        if self._pushback:
            return self._pushback.popleft()
        interval = self.settings.poll_interval_seconds
        while True:
            if self.stop_event.is_set():
                raise BridgeClosedError()
            timeout = interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                timeout = min(interval, remaining)
            try:
                return self._events.get(timeout=timeout)
            except queue.Empty:
                continue

    def drain_channel(self, channel: str, first: str = "", settle: float | None = None) -> str:
        """Collect `channel` lines that arrive within the settle window after `first`.

        Other events seen meanwhile are kept for the next `next_event` call.
        """
        settle = self.settings.stderr_settle_seconds if settle is None else settle
        lines = [first] if first else []
        kept: list[StreamEvent] = []
        deadline = time.monotonic() + settle
        while True:
            remaining = deadline - time.monotonic()
            try:
                event = self._events.get(timeout=max(remaining, 0)) if remaining > 0 else self._events.get_nowait()
            except queue.Empty:
                break
            if event.channel == channel:
                lines.append(event.text)
            else:
                kept.append(event)
        self._pushback.extend(kept)
        return "\n".join(lines)

    def drain_stderr(self, first: str = "", settle: float | None = None) -> str:
        return self.drain_channel("stderr", first, settle)

    def take_ready(self) -> list[StreamEvent]:
        """Events already queued, without waiting."""
        ready: list[StreamEvent] = []
        while True:
            try:
                ready.append(self._events.get_nowait())
            except queue.Empty:
                return ready

    def push_back(self, events: list[StreamEvent]) -> None:
        self._pushback.extend(events)

    def discard_pending(self) -> None:
        """Drop events left over from a previous call."""
        self._pushback.clear()
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return
            if event.channel == "exit":
                self._pushback.append(event)
            elif event.text:
                logger.debug("Discarding stale node.js {} output: {}", event.channel, event.text[:200])

    def write_line(self, text: str) -> None:
        proc = self._proc
        if proc is None or proc.stdin is None:
            raise BrokenPipeError("node.js process is not running")
        proc.stdin.write(text + "\n")
        proc.stdin.flush()

    def _close_streams(self) -> None:
        proc = self._proc
        if proc is None:
            return
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass

    def kill(self) -> None:
        """Forcibly stop the process and clear the handle; the working directory stays."""
        proc = self._proc
        if proc is None:
            return
        try:
            if proc.poll() is None:
                proc.kill()
                proc.wait(timeout=5.0)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Failed to stop node.js process {}: {}", proc.pid, e)
        finally:
            self._close_streams()
            self._proc = None
            self.port = None

    def terminate(self) -> None:
        """Destroy the process and delete the working directory. Safe to call more than once."""
        with self._lock:
            if self._terminated:
                return
            self._terminated = True
        self.kill()
        self.state = RuntimeState.TERMINATED
        try:
            shutil.rmtree(self.working_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete node.js process directory {}: {}", self.working_dir, e)
