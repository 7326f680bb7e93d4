"""In-memory virtual filesystem with versioned snapshots."""

from __future__ import annotations

import posixpath
import threading
from pathlib import Path


def normalize_path(path: str) -> str:
    """`some/dir//file` and `/some/dir/file` both become `/some/dir/file`."""
    cleaned = posixpath.normpath("/" + path.replace("\\", "/").lstrip("/"))
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    if cleaned in ("/.", "/.."):
        return "/"
    return cleaned


class MemoryVFS:
    """
    File tree held in memory: absolute POSIX-style path -> bytes.

    `stack()` records the current tree as a snapshot and bumps `version`,
    so earlier states stay addressable after `import_fs` replaces the tree.
    """

    def __init__(self, files: dict[str, bytes | str] | None = None):
        self._files: dict[str, bytes] = {}
        self._snapshots: list[dict[str, bytes]] = []
        self._lock = threading.RLock()
        for path, data in (files or {}).items():
            self.write(path, data)

    @classmethod
    def from_directory(cls, directory: str | Path) -> "MemoryVFS":
        vfs = cls()
        vfs.import_fs(Path(directory))
        return vfs

    @property
    def version(self) -> int:
        return len(self._snapshots)

    def write(self, path: str, data: bytes | str) -> None:
        content = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        with self._lock:
            self._files[normalize_path(path)] = content

    def read(self, path: str) -> bytes:
        with self._lock:
            try:
                return self._files[normalize_path(path)]
            except KeyError:
                raise FileNotFoundError(path) from None

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read(path).decode(encoding)

    def exists(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._files

    def remove(self, path: str) -> None:
        with self._lock:
            self._files.pop(normalize_path(path), None)

    def list_files(self) -> list[str]:
        with self._lock:
            return sorted(self._files)

    def snapshot(self, version: int | None = None) -> dict[str, bytes]:
        """Files as of `version` (1-based, as returned by `stack`), or the current tree."""
        with self._lock:
            if version is None:
                return dict(self._files)
            if not 1 <= version <= len(self._snapshots):
                raise KeyError(f"unknown snapshot version: {version}")
            return dict(self._snapshots[version - 1])

    def stack(self) -> int:
        with self._lock:
            self._snapshots.append(dict(self._files))
            return len(self._snapshots)

    def export_fs(self, directory: Path) -> None:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        with self._lock:
            files = dict(self._files)
        for path, content in files.items():
            target = directory.joinpath(*path.lstrip("/").split("/"))
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

    def import_fs(self, directory: Path) -> None:
        """Replace the tree with the files found under `directory`."""
        directory = Path(directory)
        files: dict[str, bytes] = {}
        if directory.is_dir():
            for item in sorted(directory.rglob("*")):
                if item.is_file():
                    files["/" + item.relative_to(directory).as_posix()] = item.read_bytes()
        with self._lock:
            self._files = files
