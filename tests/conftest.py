"""Pytest hooks and fixtures."""

import shutil
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from nodebridge.config.schema import BridgeConfig
from nodebridge.runtime.platform import detect_platform, runtime_executable_resource
from nodebridge.runtime.provisioner import BOOTSTRAP_SCRIPTS

FIXTURES = Path(__file__).parent / "fixtures"
VERSION = "0.10.24"


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "e2e: drives a real subprocess through the fake runtime",
    )


def pytest_collection_modifyitems(config, items):
    """The fake runtime executable is a POSIX shell wrapper; skip e2e tests on Windows."""
    if sys.platform != "win32":
        return
    skip = pytest.mark.skip(reason="Fake node wrapper needs a POSIX shell")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip)


def write_fake_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f'#!/bin/sh\nexec "{sys.executable}" "$@"\n', encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_runtime_root(tmp_path: Path) -> Path:
    """Resource root laid out like nodebridge/resources, backed by the Python fake runtime."""
    root = tmp_path / "resources"
    write_fake_executable(root / runtime_executable_resource(VERSION, detect_platform()))
    for script in BOOTSTRAP_SCRIPTS.values():
        shutil.copyfile(FIXTURES / "fake_runtime.py", root / f"v{VERSION}" / script)
    return root


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    root = tmp_path / "tmp"
    root.mkdir()
    return root


@pytest.fixture
def bridge_config(fake_runtime_root: Path, temp_root: Path):
    def _make(mode: str = "line", **transport) -> BridgeConfig:
        settings = {"mode": mode, "startup_timeout_seconds": 15.0, "stderr_settle_seconds": 0.1}
        settings.update(transport)
        return BridgeConfig(
            runtime={"version": VERSION, "resource_root": str(fake_runtime_root)},
            transport=settings,
            staging={"temp_dir": str(temp_root)},
        )

    return _make


@pytest.fixture
def module_dir(tmp_path: Path):
    """Create a module directory whose index.js holds the given handler source."""

    def _make(source: str, name: str = "module") -> Path:
        directory = tmp_path / "modules" / name
        directory.mkdir(parents=True)
        (directory / "index.js").write_text(textwrap.dedent(source), encoding="utf-8")
        return directory

    return _make
