"""Read and write the bridge config file (~/.nodebridge/config.json)."""

import json
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from nodebridge.config.schema import BridgeConfig

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    return Path.home() / ".nodebridge" / "config.json"


def load_config(config_path: Path | None = None) -> BridgeConfig:
    """
    Build a BridgeConfig from the JSON file at `config_path` (default location when omitted).

    The file uses camelCase keys. Anything it leaves unset comes from
    NODEBRIDGE_* environment variables (e.g. NODEBRIDGE_TRANSPORT__MODE=socket)
    and then from the schema defaults. A missing file yields the defaults;
    a malformed one raises ValueError naming the file.
    """
    path = config_path or get_config_path()
    if not path.exists():
        return BridgeConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("top level must be a JSON object")
        return BridgeConfig(**convert_keys(raw))
    except (json.JSONDecodeError, ValueError) as e:
        raise ValueError(
            f"Invalid nodebridge config {path}: {e}. "
            "Fix the file or remove it to regenerate defaults."
        ) from e


def save_config(config: BridgeConfig, config_path: Path | None = None) -> Path:
    """Write `config` with camelCase keys and drop any cached copy of that file."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = convert_to_camel(config.model_dump(mode="json"))
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

    from nodebridge.config.access import clear_config_cache

    clear_config_cache(config_path=path)
    return path


def _rename_keys(data: Any, rename: Callable[[str], str]) -> Any:
    if isinstance(data, dict):
        return {rename(key): _rename_keys(value, rename) for key, value in data.items()}
    if isinstance(data, list):
        return [_rename_keys(item, rename) for item in data]
    return data


def convert_keys(data: Any) -> Any:
    """camelCase keys -> snake_case, recursively."""
    return _rename_keys(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """snake_case keys -> camelCase, recursively."""
    return _rename_keys(data, snake_to_camel)


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
