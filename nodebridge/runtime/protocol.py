"""Wire envelopes exchanged with the node.js bootstrap script."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

LEVEL_INFO = "INFO"
LEVEL_ERROR = "ERROR"


@dataclass(slots=True)
class CommandEnvelope:
    """Request for one call: where the runtime lives, where input is, where output goes."""

    cwd: str
    indir: str
    outdir: str
    file: str | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"cwd": self.cwd, "indir": self.indir}
        if self.file is not None:
            payload["file"] = self.file
        payload["outdir"] = self.outdir
        payload["options"] = self.options
        return payload


@dataclass(slots=True)
class OutputLine:
    """A console line captured by the runtime during a call."""

    level: str
    message: str


@dataclass(slots=True)
class ResponseEnvelope:
    """Reply for one call. `error` wins over `result` when both are set."""

    output: list[OutputLine] = field(default_factory=list)
    error: str | None = None
    result: str | None = None


def strip_leading_separator(path: str) -> str:
    """`/some.file` -> `some.file`; relative paths pass unchanged."""
    if path[:1] in ("/", "\\"):
        return path[1:]
    return path


def build_command(
    cwd: str,
    indir: str,
    outdir: str,
    file: str | None = None,
    options: dict[str, Any] | None = None,
) -> CommandEnvelope:
    return CommandEnvelope(
        cwd=cwd,
        indir=indir,
        outdir=outdir,
        file=strip_leading_separator(file) if file is not None else None,
        options=dict(options or {}),
    )
