"""Configuration module for nodebridge."""

from nodebridge.config.loader import load_config, get_config_path, save_config
from nodebridge.config.schema import BridgeConfig, TransportMode
from nodebridge.config.access import get_config, clear_config_cache

__all__ = [
    "BridgeConfig",
    "TransportMode",
    "load_config",
    "save_config",
    "get_config_path",
    "get_config",
    "clear_config_cache",
]
