"""Protocol codec: one command envelope out, one response envelope in."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from nodebridge.runtime.protocol import build_command
from nodebridge.runtime.serialization import decode_response_text, encode_command_line, handle_response
from nodebridge.runtime.types import RuntimeState, Task

if TYPE_CHECKING:
    from nodebridge.runtime.staging import StagingArea
    from nodebridge.runtime.supervisor import ProcessSupervisor
    from nodebridge.runtime.transports import Transport


class ProtocolCodec:
    """Builds the command for a task, sends it over the transport and interprets the reply."""

    def __init__(self, supervisor: "ProcessSupervisor", transport: "Transport | None" = None):
        self.supervisor = supervisor
        self.transport = transport or supervisor.transport

    def call(self, task: Task, staging: "StagingArea") -> str | None:
        command = build_command(
            cwd=str(self.supervisor.working_dir),
            indir=str(staging.input_dir),
            outdir=str(staging.output_dir),
            file=task.infile,
            options=task.options,
        )
        line = encode_command_line(command)
        logger.debug("node.js command: {}", line)
        self.supervisor.state = RuntimeState.BUSY
        try:
            raw = self.transport.exchange(self.supervisor, line)
        finally:
            if self.supervisor.state is RuntimeState.BUSY:
                self.supervisor.state = RuntimeState.READY
        return handle_response(decode_response_text(raw))
