"""Process-wide cache of loaded config files, keyed by resolved path."""

from __future__ import annotations

import threading
from pathlib import Path

from nodebridge.config.loader import get_config_path, load_config
from nodebridge.config.schema import BridgeConfig

_configs: dict[Path, BridgeConfig] = {}
_configs_lock = threading.RLock()


def _resolved(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> BridgeConfig:
    """Load the config file once per process; `force_reload` re-reads it."""
    path = _resolved(config_path)
    with _configs_lock:
        cached = None if force_reload else _configs.get(path)
        if cached is None:
            cached = _configs[path] = load_config(path)
        return cached


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one cached file, or every cached file when no path is given."""
    with _configs_lock:
        if config_path is None:
            _configs.clear()
        else:
            _configs.pop(_resolved(config_path), None)
