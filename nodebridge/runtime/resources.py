"""Access to packaged runtime resources (executables and bootstrap scripts)."""

from __future__ import annotations

import shutil
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import BinaryIO


class ResourceLocator:
    """Open resources by relative path, from package data or a host directory.

    Layout under the root: `v<version>/<script>` and
    `v<version>/<platform-id>/<executable>`.
    """

    def __init__(self, root: str | Path | None = None):
        self.root: Traversable = (
            Path(root).expanduser().resolve() if root else resources.files("nodebridge") / "resources"
        )

    def _entry(self, path: str) -> Traversable:
        entry = self.root
        for part in path.strip("/").split("/"):
            if part:
                entry = entry / part
        return entry

    def exists(self, path: str) -> bool:
        return self._entry(path).is_file()

    def open(self, path: str) -> BinaryIO:
        entry = self._entry(path)
        if not entry.is_file():
            raise FileNotFoundError(f"/{path.strip('/')}")
        return entry.open("rb")

    def copy_to(self, path: str, target: Path) -> Path:
        """Copy resource `path` to the file `target`, creating parent directories."""
        target.parent.mkdir(parents=True, exist_ok=True)
        with self.open(path) as src, open(target, "wb") as dst:
            shutil.copyfileobj(src, dst)
        return target

    def describe(self, path: str) -> str:
        return str(self._entry(path))
