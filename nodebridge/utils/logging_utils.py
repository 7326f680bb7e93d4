"""Loguru helpers for bridge and CLI logging."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_SINK_IDS: dict[str, int] = {}


def configure_logging(level: str = "INFO", log_file: str | Path | None = None) -> Path | None:
    """Reset the stderr sink to `level` and optionally add a rotating file sink."""
    stderr_id = _SINK_IDS.pop("<stderr>", None)
    if stderr_id is None:
        logger.remove()
    else:
        logger.remove(stderr_id)
    _SINK_IDS["<stderr>"] = logger.add(sys.stderr, level=level.upper())
    if not log_file:
        return None
    log_path = Path(log_file).expanduser()
    key = str(log_path.resolve())
    if key in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _SINK_IDS[key] = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    return log_path
