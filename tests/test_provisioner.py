"""Tests for platform detection, resource lookup and runtime provisioning."""

import os
import stat
from pathlib import Path

import pytest

from nodebridge.config.schema import TransportMode
from nodebridge.runtime import provisioner
from nodebridge.runtime.platform import (
    Architecture,
    OperatingSystem,
    RuntimePlatform,
    bootstrap_resource,
    detect_platform,
    runtime_executable_resource,
)
from nodebridge.runtime.provisioner import provision_runtime, runtime_report
from nodebridge.runtime.resources import ResourceLocator
from nodebridge.utils.exceptions import ProvisioningError

LINUX64 = RuntimePlatform(OperatingSystem.LINUX, Architecture.X86_64)


@pytest.mark.parametrize(
    ("system", "machine", "expected"),
    [
        ("Linux", "x86_64", "linux-x86_64"),
        ("Linux", "aarch64", "linux-x86_64"),
        ("Linux", "i686", "linux-x86"),
        ("Darwin", "arm64", "macos-x86_64"),
        ("Windows", "AMD64", "win-x86_64"),
        ("Windows", "x86", "win-x86"),
        ("CYGWIN_NT-10.0", "x86_64", "win-x86_64"),
    ],
)
def test_detect_platform(system, machine, expected):
    assert detect_platform(system, machine).identifier == expected


def test_detect_platform_rejects_unknown_os():
    with pytest.raises(ProvisioningError, match="Unsupported operating system: sunos"):
        detect_platform("SunOS", "sparc64")


def test_resource_paths():
    win = RuntimePlatform(OperatingSystem.WIN, Architecture.X86)
    assert runtime_executable_resource("0.10.24", win) == "v0.10.24/win-x86/node.exe"
    assert runtime_executable_resource("0.10.24", LINUX64) == "v0.10.24/linux-x86_64/node"
    assert bootstrap_resource("0.10.24", "ipc.js") == "v0.10.24/ipc.js"


def test_packaged_bootstrap_scripts_exist():
    locator = ResourceLocator()
    for script in provisioner.BOOTSTRAP_SCRIPTS.values():
        assert locator.exists(bootstrap_resource("0.10.24", script))


def test_locator_open_missing_raises_with_path(tmp_path):
    with pytest.raises(FileNotFoundError, match="/v1/missing"):
        ResourceLocator(tmp_path).open("v1/missing")


@pytest.fixture
def resource_root(tmp_path: Path) -> Path:
    root = tmp_path / "res"
    (root / "v1.0.0" / "linux-x86_64").mkdir(parents=True)
    (root / "v1.0.0" / "linux-x86_64" / "node").write_bytes(b"binary")
    (root / "v1.0.0" / "ipc.js").write_text("// line", encoding="utf-8")
    return root


def test_provision_copies_executable_and_bootstrap(resource_root, tmp_path):
    runtime = provision_runtime(
        "1.0.0",
        TransportMode.LINE,
        ResourceLocator(resource_root),
        runtime_platform=LINUX64,
        temp_dir=tmp_path / "tmp",
    )

    assert runtime.working_dir.name.startswith("nodejs-v1.0.0")
    assert runtime.working_dir.name.endswith(".dir")
    assert runtime.executable.read_bytes() == b"binary"
    assert runtime.executable.stat().st_mode & stat.S_IXUSR
    assert runtime.bootstrap == runtime.working_dir / "ipc.js"
    assert runtime.bootstrap.read_text(encoding="utf-8") == "// line"


def test_missing_executable_leaves_no_directory(resource_root, tmp_path):
    temp_dir = tmp_path / "tmp"
    win = RuntimePlatform(OperatingSystem.WIN, Architecture.X86_64)

    with pytest.raises(ProvisioningError) as exc_info:
        provision_runtime("1.0.0", TransportMode.LINE, ResourceLocator(resource_root), runtime_platform=win, temp_dir=temp_dir)

    assert exc_info.value.details["resource"] == "/v1.0.0/win-x86_64/node.exe"
    assert list(temp_dir.iterdir()) == []


def test_missing_bootstrap_leaves_no_directory(resource_root, tmp_path):
    temp_dir = tmp_path / "tmp"

    with pytest.raises(ProvisioningError, match="ipc-socket.js"):
        provision_runtime("1.0.0", TransportMode.SOCKET, ResourceLocator(resource_root), runtime_platform=LINUX64, temp_dir=temp_dir)

    assert list(temp_dir.iterdir()) == []


def test_node_path_takes_precedence(resource_root, tmp_path):
    custom = tmp_path / "custom-node"
    custom.write_bytes(b"custom")

    runtime = provision_runtime(
        "1.0.0",
        TransportMode.LINE,
        ResourceLocator(resource_root),
        runtime_platform=LINUX64,
        node_path=str(custom),
        temp_dir=tmp_path / "tmp",
    )

    assert runtime.executable.read_bytes() == b"custom"


def test_system_fallback_uses_node_on_path(tmp_path, monkeypatch):
    root = tmp_path / "res"
    (root / "v1.0.0").mkdir(parents=True)
    (root / "v1.0.0" / "ipc.js").write_text("// line", encoding="utf-8")
    system_node = tmp_path / "bin" / "node"
    system_node.parent.mkdir()
    system_node.write_bytes(b"system")
    monkeypatch.setattr(provisioner.shutil, "which", lambda name: str(system_node))

    runtime = provision_runtime(
        "1.0.0",
        TransportMode.LINE,
        ResourceLocator(root),
        runtime_platform=LINUX64,
        system_fallback=True,
        temp_dir=tmp_path / "tmp",
    )

    assert runtime.executable.read_bytes() == b"system"


def test_runtime_report_flags_missing_pieces(resource_root, monkeypatch):
    monkeypatch.setattr(provisioner.shutil, "which", lambda name: None)

    report = runtime_report("1.0.0", TransportMode.ARGV, ResourceLocator(resource_root), runtime_platform=LINUX64)

    assert report["platform"] == "linux-x86_64"
    assert report["transport"] == "argv"
    assert report["checks"]["packagedExecutableExists"] is True
    assert report["checks"]["executableAvailable"] is True
    assert report["checks"]["bootstrapExists"] is False
    assert any("ipc-argv.js" in hint for hint in report["suggestions"])


def test_runtime_report_suggests_system_fallback(tmp_path, monkeypatch):
    monkeypatch.setattr(provisioner.shutil, "which", lambda name: os.sep + "usr/bin/node")

    report = runtime_report("1.0.0", TransportMode.LINE, ResourceLocator(tmp_path), runtime_platform=LINUX64)

    assert report["checks"]["executableAvailable"] is False
    assert report["checks"]["systemNodeAvailable"] is True
    assert any("system_fallback" in hint for hint in report["suggestions"])
