"""Types shared by the runtime bridge components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class VirtualFileSystem(Protocol):
    """What the bridge needs from the caller's virtual filesystem."""

    def export_fs(self, directory: Path) -> None: ...
    def import_fs(self, directory: Path) -> None: ...
    def stack(self) -> Any: ...


class RuntimeState(str, Enum):
    """Lifecycle of the supervised runtime process."""
    ABSENT = "absent"
    STARTING = "starting"
    READY = "ready"
    BUSY = "busy"
    FAILED = "failed"
    TERMINATED = "terminated"


class ProcessStatusKind(str, Enum):
    NEVER_STARTED = "never_started"
    RUNNING = "running"
    EXITED = "exited"


@dataclass(frozen=True, slots=True)
class ProcessStatus:
    """Answer to "is the runtime process alive", with the exit code once it is not."""

    kind: ProcessStatusKind
    exit_code: int | None = None

    @property
    def running(self) -> bool:
        return self.kind is ProcessStatusKind.RUNNING


NEVER_STARTED = ProcessStatus(ProcessStatusKind.NEVER_STARTED)
RUNNING = ProcessStatus(ProcessStatusKind.RUNNING)


@dataclass(slots=True)
class ProvisionedRuntime:
    """Files laid out in a freshly provisioned working directory."""

    working_dir: Path
    executable: Path
    bootstrap: Path
    version: str


@dataclass(slots=True)
class StreamEvent:
    """One observation from the runtime process or its socket."""

    channel: str  # stdout | stderr | socket | exit
    text: str = ""


@dataclass(slots=True)
class Task:
    """One call into the runtime; filled in by the worker thread."""

    vfs: VirtualFileSystem
    infile: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    result: str | None = None
    exception: BaseException | None = None

    def get_result(self) -> str | None:
        if self.exception is not None:
            raise self.exception
        return self.result
