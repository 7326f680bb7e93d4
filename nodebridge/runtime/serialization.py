"""Serialization helpers for bridge command and response envelopes."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from .protocol import LEVEL_ERROR, LEVEL_INFO, CommandEnvelope, OutputLine, ResponseEnvelope
from nodebridge.utils.exceptions import ProtocolError, RuntimeCallError

COMMENT_PREFIX = "//"
_COMMENT_LEVELS = {"OUT": LEVEL_INFO, "ERR": LEVEL_ERROR}


def encode_command_line(command: CommandEnvelope) -> str:
    """Encode a command envelope into one line of compact JSON."""
    return json.dumps(command.to_payload(), ensure_ascii=False, separators=(",", ":"))


def _comment_line(line: str) -> OutputLine | None:
    """`//OUT: text` -> INFO line, `//ERR: text` -> ERROR line, other comments are dropped."""
    body = line.strip()[len(COMMENT_PREFIX):]
    kind, sep, message = body.partition(":")
    level = _COMMENT_LEVELS.get(kind.strip().upper())
    if not sep or level is None:
        return None
    return OutputLine(level=level, message=message[1:] if message.startswith(" ") else message)


def normalize_output(raw: Any) -> list[OutputLine]:
    """Normalize the `output` field into OutputLine rows; unknown levels become INFO."""
    lines: list[OutputLine] = []
    if not isinstance(raw, list):
        return lines
    for item in raw:
        if isinstance(item, dict):
            level = str(item.get("level") or LEVEL_INFO).upper()
            lines.append(OutputLine(
                level=level if level in (LEVEL_INFO, LEVEL_ERROR) else LEVEL_INFO,
                message=str(item.get("message", "")),
            ))
        elif item is not None:
            lines.append(OutputLine(level=LEVEL_INFO, message=str(item)))
    return lines


def decode_response_text(raw: str | None) -> ResponseEnvelope:
    """
    Decode raw runtime output into a ResponseEnvelope.

    Comment lines are removed (and kept as output when they carry a level),
    an empty body means "no result", anything else must be one JSON object.
    """
    comments: list[OutputLine] = []
    body_lines: list[str] = []
    for line in (raw or "").splitlines():
        if line.lstrip().startswith(COMMENT_PREFIX):
            parsed = _comment_line(line)
            if parsed is not None:
                comments.append(parsed)
            continue
        body_lines.append(line)
    body = "\n".join(body_lines).strip()
    if not body:
        return ResponseEnvelope(output=comments)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise ProtocolError(raw or "", reason="Invalid node.js response") from e
    if not isinstance(payload, dict):
        raise ProtocolError(raw or "", reason="node.js response is not an object")
    error = payload.get("error")
    result = payload.get("result")
    return ResponseEnvelope(
        output=comments + normalize_output(payload.get("output")),
        error=str(error) if error is not None else None,
        result=str(result) if result is not None else None,
    )


def log_output(lines: list[OutputLine]) -> None:
    """Re-log runtime console output by level."""
    for line in lines:
        if line.level == LEVEL_ERROR:
            logger.error("node.js: {}", line.message)
        else:
            logger.info("node.js: {}", line.message)


def handle_response(response: ResponseEnvelope) -> str | None:
    """Log output, raise the reported error, or return the result path (None when absent)."""
    if response.output:
        log_output(response.output)
    if response.error is not None:
        raise RuntimeCallError(
            response.error,
            output=[{"level": line.level, "message": line.message} for line in response.output],
        )
    return response.result
