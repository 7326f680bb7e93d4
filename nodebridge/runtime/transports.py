"""Transports carrying one serialized command to the runtime and its raw reply back."""

from __future__ import annotations

import socket
import subprocess
import threading
import time
from typing import TYPE_CHECKING

from loguru import logger

from nodebridge.config.schema import TransportMode
from nodebridge.runtime.serialization import decode_response_text
from nodebridge.runtime.types import RuntimeState, StreamEvent
from nodebridge.utils.exceptions import (
    BridgeClosedError,
    CallTimeoutError,
    NodeJsError,
    ProtocolError,
    RuntimeCallError,
    StartupError,
)

if TYPE_CHECKING:
    from nodebridge.runtime.supervisor import ProcessSupervisor

READY_TOKEN = "ipc-ready"


def stderr_failure(text: str) -> RuntimeCallError:
    """Turn error-stream output seen during a call into the error raised to the caller.

    Any stderr output fails the call. When the text is itself a response
    envelope carrying `error`, that message is used.
    """
    logger.error("node.js stderr: {}", text)
    try:
        envelope = decode_response_text(text)
    except ProtocolError:
        return RuntimeCallError(text)
    if envelope.error is not None:
        return RuntimeCallError(envelope.error)
    return RuntimeCallError(text)


def _stderr_during_call(supervisor: "ProcessSupervisor", first: str) -> RuntimeCallError:
    """Fail the call on stderr output; the process is killed so its late reply cannot reach the next call."""
    error = stderr_failure(supervisor.drain_stderr(first))
    supervisor.state = RuntimeState.FAILED
    supervisor.kill()
    return error


def _deadline(seconds: float | None) -> float | None:
    return time.monotonic() + seconds if seconds is not None else None


def _call_timed_out(supervisor: "ProcessSupervisor") -> CallTimeoutError:
    supervisor.state = RuntimeState.FAILED
    supervisor.kill()
    return CallTimeoutError(supervisor.settings.call_timeout_seconds or 0)


def _exited_during_call(supervisor: "ProcessSupervisor") -> RuntimeCallError:
    stderr = supervisor.drain_stderr()
    supervisor.state = RuntimeState.FAILED
    code = None
    proc = supervisor.process
    if proc is not None:
        try:
            code = proc.wait(timeout=1.0)
        except subprocess.TimeoutExpired:
            code = None
    message = f"node.js process exited unexpectedly (code {code})"
    if stderr:
        logger.error("node.js stderr: {}", stderr)
        message = f"{message}:\n{stderr}"
    return RuntimeCallError(message)


class Transport:
    """Base transport: a handshake after spawn and one exchange per call."""

    mode: TransportMode
    persistent = True

    def handshake(self, supervisor: "ProcessSupervisor") -> None:
        raise NotImplementedError

    def exchange(self, supervisor: "ProcessSupervisor", line: str) -> str:
        raise NotImplementedError

    def _first_stdout_line(self, supervisor: "ProcessSupervisor") -> str:
        """Wait for the first stdout line of a fresh process; fail the startup otherwise."""
        event = supervisor.next_event(_deadline(supervisor.settings.startup_timeout_seconds))
        if event is None:
            stderr = supervisor.drain_stderr(settle=0)
            raise StartupError("Timed out waiting for node.js process to become ready", stderr=stderr)
        if event.channel == "stdout":
            return event.text
        if event.channel == "stderr":
            stderr = supervisor.drain_stderr(event.text)
            logger.error("node.js failed during startup: {}", stderr)
            raise StartupError(f"Unable to start node.js process:\n{stderr}", stderr=stderr)
        stderr = supervisor.drain_stderr()
        raise StartupError(f"Unable to start node.js process:\n{stderr}", stderr=stderr)


class LineTransport(Transport):
    """Envelopes as lines on the long-lived process's stdin, replies as lines on its stdout."""

    mode = TransportMode.LINE

    def handshake(self, supervisor: "ProcessSupervisor") -> None:
        line = self._first_stdout_line(supervisor)
        if line.strip() != READY_TOKEN:
            stderr = supervisor.drain_stderr()
            raise StartupError(f"Unable to start node.js process:\n{stderr or line}", stderr=stderr)

    def exchange(self, supervisor: "ProcessSupervisor", line: str) -> str:
        supervisor.discard_pending()
        try:
            supervisor.write_line(line)
        except (BrokenPipeError, OSError) as e:
            raise _exited_during_call(supervisor) from e
        event = supervisor.next_event(_deadline(supervisor.settings.call_timeout_seconds))
        if event is None:
            raise _call_timed_out(supervisor)
        if event.channel == "stdout":
            return event.text
        if event.channel == "stderr":
            raise _stderr_during_call(supervisor, event.text)
        raise _exited_during_call(supervisor)


class SocketTransport(Transport):
    """Envelopes over a loopback TCP connection to the port the process announced."""

    mode = TransportMode.SOCKET
    _priority = {"stdout": 0, "stderr": 1, "socket": 2, "exit": 3}

    def handshake(self, supervisor: "ProcessSupervisor") -> None:
        line = self._first_stdout_line(supervisor).strip()
        try:
            port = int(line)
        except ValueError:
            stderr = supervisor.drain_stderr()
            raise StartupError(f"Failed to start node.js ipc, expected a port but got: {line!r}", stderr=stderr)
        if not 0 < port < 65536:
            raise StartupError(f"Failed to start node.js ipc, invalid port {port}")
        supervisor.port = port

    def _read_socket_line(self, sock: socket.socket, supervisor: "ProcessSupervisor") -> None:
        try:
            with sock.makefile("r", encoding="utf-8", newline="\n") as reader:
                line = reader.readline()
        except (OSError, ValueError):
            return
        if line:
            supervisor.post_event(StreamEvent("socket", line.rstrip("\r\n")))

    def _pick(self, supervisor: "ProcessSupervisor", first: StreamEvent) -> StreamEvent:
        """Among events that are ready together, prefer stdout, then stderr, then the socket."""
        ready = [first, *supervisor.take_ready()]
        ready.sort(key=lambda ev: self._priority.get(ev.channel, 9))
        supervisor.push_back(ready[1:])
        return ready[0]

    def exchange(self, supervisor: "ProcessSupervisor", line: str) -> str:
        if supervisor.port is None:
            raise NodeJsError("node.js ipc port is unknown")
        supervisor.discard_pending()
        try:
            sock = socket.create_connection(("127.0.0.1", supervisor.port), timeout=supervisor.settings.startup_timeout_seconds)
        except OSError as e:
            raise _exited_during_call(supervisor) from e
        try:
            sock.settimeout(None)
            sock.sendall((line + "\n").encode("utf-8"))
            threading.Thread(target=self._read_socket_line, args=(sock, supervisor), daemon=True).start()
            event = supervisor.next_event(_deadline(supervisor.settings.call_timeout_seconds))
            if event is None:
                raise _call_timed_out(supervisor)
            event = self._pick(supervisor, event)
            if event.channel == "socket":
                return event.text
            if event.channel == "stdout":
                return supervisor.drain_channel("stdout", event.text)
            if event.channel == "stderr":
                raise _stderr_during_call(supervisor, event.text)
            raise _exited_during_call(supervisor)
        finally:
            try:
                sock.close()
            except OSError:
                pass


class ArgvTransport(Transport):
    """One short-lived process per call, with the envelope passed as its argument."""

    mode = TransportMode.ARGV
    persistent = False

    def handshake(self, supervisor: "ProcessSupervisor") -> None:
        return None

    def exchange(self, supervisor: "ProcessSupervisor", line: str) -> str:
        settings = supervisor.settings
        deadline = _deadline(settings.call_timeout_seconds)
        try:
            proc = subprocess.Popen(
                supervisor.command(line),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(supervisor.working_dir),
                env=supervisor.environment(),
            )
        except OSError as e:
            raise StartupError(f"Unable to start node.js process: {e}") from e
        try:
            while True:
                if supervisor.stop_event.is_set():
                    raise BridgeClosedError()
                if deadline is not None and time.monotonic() >= deadline:
                    supervisor.state = RuntimeState.FAILED
                    raise CallTimeoutError(settings.call_timeout_seconds or 0)
                try:
                    stdout, stderr = proc.communicate(timeout=settings.poll_interval_seconds)
                    break
                except subprocess.TimeoutExpired:
                    continue
        except BaseException:
            proc.kill()
            proc.communicate()
            raise
        if stderr and stderr.strip():
            raise stderr_failure(stderr.strip())
        return stdout


def create_transport(mode: TransportMode | str) -> Transport:
    mode = TransportMode(mode)
    if mode is TransportMode.SOCKET:
        return SocketTransport()
    if mode is TransportMode.ARGV:
        return ArgvTransport()
    return LineTransport()
