"""Virtual filesystem implementations usable with the bridge."""

from nodebridge.vfs.memory import MemoryVFS, normalize_path

__all__ = ["MemoryVFS", "normalize_path"]
