"""Single-flight worker: one dedicated thread serves calls into the runtime, one at a time."""

from __future__ import annotations

import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from nodebridge.runtime.staging import staged_call
from nodebridge.runtime.types import Task
from nodebridge.utils.exceptions import BridgeClosedError, NodeJsError

if TYPE_CHECKING:
    from nodebridge.runtime.codec import ProtocolCodec
    from nodebridge.runtime.supervisor import ProcessSupervisor


class Worker:
    """
    Hands tasks to a daemon thread through two single-slot queues.

    The worker thread is the only code touching the runtime process and its
    working directory. Callers hold the submission lock from putting their
    task until taking it back, so results can never be handed to the wrong
    caller.
    """

    def __init__(
        self,
        supervisor: "ProcessSupervisor",
        codec: "ProtocolCodec",
        *,
        stop_event: threading.Event | None = None,
        temp_dir: str | Path | None = None,
        join_timeout: float = 10.0,
    ):
        self.supervisor = supervisor
        self.codec = codec
        self.temp_dir = temp_dir
        self.join_timeout = join_timeout
        self._stop = stop_event or supervisor.stop_event
        self._poll = supervisor.settings.poll_interval_seconds
        self._inbound: queue.Queue[Task] = queue.Queue(maxsize=1)
        self._outbound: queue.Queue[Task] = queue.Queue(maxsize=1)
        self._submit_lock = threading.Lock()
        self._dispose_lock = threading.Lock()
        self._disposed = False
        self._thread: threading.Thread | None = None

    @property
    def closed(self) -> bool:
        return self._disposed or self._stop.is_set()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="nodejs-worker", daemon=True)
        self._thread.start()
        logger.debug("node.js worker thread started")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                task = self._inbound.get(timeout=self._poll)
            except queue.Empty:
                continue
            self._execute(task)
            self._outbound.put(task)
        logger.debug("node.js worker thread stopped")

    def _execute(self, task: Task) -> None:
        try:
            with staged_call(task.vfs, self.temp_dir) as staging:
                self.supervisor.ensure_running()
                task.result = self.codec.call(task, staging)
                staging.commit()
        except NodeJsError as e:
            task.exception = e
        except Exception as e:
            logger.error("Unexpected exception in node.js call: {}", e)
            wrapped = NodeJsError("Unexpected exception", details={"cause": repr(e)})
            wrapped.__cause__ = e
            task.exception = wrapped

    def submit(self, task: Task) -> str | None:
        """Run `task` on the worker thread; return its result or raise its exception."""
        if self.closed:
            raise BridgeClosedError()
        with self._submit_lock:
            self._put(task)
            done = self._take()
        return done.get_result()

    def _put(self, task: Task) -> None:
        while True:
            if self.closed:
                raise BridgeClosedError()
            try:
                self._inbound.put(task, timeout=self._poll)
                return
            except queue.Full:
                continue

    def _take(self) -> Task:
        while True:
            try:
                return self._outbound.get(timeout=self._poll)
            except queue.Empty:
                pass
            thread = self._thread
            if self.closed and (thread is None or not thread.is_alive()):
                try:
                    return self._outbound.get_nowait()
                except queue.Empty:
                    raise BridgeClosedError() from None

    def dispose(self) -> None:
        """Stop the thread after its current iteration and tear the runtime down. Never raises."""
        with self._dispose_lock:
            if self._disposed:
                return
            self._disposed = True
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.join_timeout)
            if thread.is_alive():
                logger.warning("node.js worker thread did not stop within {}s", self.join_timeout)
        try:
            self.supervisor.terminate()
        except Exception as e:
            logger.warning("Failed to tear down node.js process: {}", e)
