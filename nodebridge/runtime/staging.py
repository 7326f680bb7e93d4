"""Stage a virtual filesystem snapshot into and out of one runtime call."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from nodebridge.runtime.types import VirtualFileSystem


@dataclass(slots=True)
class StagingArea:
    """Per-call temp directory with `input/` (exported VFS) and `output/` (runtime results)."""

    root: Path
    input_dir: Path
    output_dir: Path
    vfs: VirtualFileSystem

    def commit(self) -> None:
        """Record a new VFS version, then import what the runtime wrote."""
        self.vfs.stack()
        self.vfs.import_fs(self.output_dir)


@contextmanager
def staged_call(vfs: VirtualFileSystem, temp_dir: str | Path | None = None) -> Iterator[StagingArea]:
    """Export `vfs` into a fresh staging directory; the directory is removed on every exit path."""
    if temp_dir:
        Path(temp_dir).mkdir(parents=True, exist_ok=True)
    root = Path(tempfile.mkdtemp(prefix="node-resource", suffix=".dir", dir=temp_dir)).resolve()
    try:
        input_dir = root / "input"
        output_dir = root / "output"
        input_dir.mkdir()
        output_dir.mkdir()
        vfs.export_fs(input_dir)
        yield StagingArea(root=root, input_dir=input_dir, output_dir=output_dir, vfs=vfs)
    finally:
        try:
            shutil.rmtree(root)
        except OSError as e:
            logger.warning("Failed to delete staging directory {}: {}", root, e)
