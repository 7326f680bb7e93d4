"""Platform identifiers used to pick the packaged runtime executable."""

from __future__ import annotations

import platform as _platform
from dataclasses import dataclass
from enum import Enum

from nodebridge.utils.exceptions import ProvisioningError


class OperatingSystem(str, Enum):
    WIN = "win"
    MACOS = "macos"
    LINUX = "linux"


class Architecture(str, Enum):
    X86_64 = "x86_64"
    X86 = "x86"


@dataclass(frozen=True, slots=True)
class RuntimePlatform:
    """One entry of the OS x architecture-width matrix, e.g. `linux-x86_64`."""

    os: OperatingSystem
    arch: Architecture

    @property
    def identifier(self) -> str:
        return f"{self.os.value}-{self.arch.value}"

    @property
    def executable_name(self) -> str:
        return "node.exe" if self.os is OperatingSystem.WIN else "node"

    def __str__(self) -> str:
        return self.identifier


_SYSTEMS = {
    "windows": OperatingSystem.WIN,
    "darwin": OperatingSystem.MACOS,
    "linux": OperatingSystem.LINUX,
}


def detect_platform(system: str | None = None, machine: str | None = None) -> RuntimePlatform:
    """Map the host OS and machine names onto a RuntimePlatform.

    Any machine name containing "64" is treated as a 64 bit host.
    """
    system_name = (system if system is not None else _platform.system()).strip().lower()
    machine_name = (machine if machine is not None else _platform.machine()).strip().lower()
    os_kind = _SYSTEMS.get(system_name)
    if os_kind is None and system_name.startswith(("cygwin", "msys", "mingw")):
        os_kind = OperatingSystem.WIN
    if os_kind is None:
        raise ProvisioningError(f"Unsupported operating system: {system_name or 'unknown'}")
    arch = Architecture.X86_64 if "64" in machine_name else Architecture.X86
    return RuntimePlatform(os_kind, arch)


def runtime_executable_resource(version: str, runtime_platform: RuntimePlatform) -> str:
    """Resource path of the packaged executable for `version` on `runtime_platform`."""
    return f"v{version}/{runtime_platform.identifier}/{runtime_platform.executable_name}"


def bootstrap_resource(version: str, script: str) -> str:
    """Resource path of a bootstrap script for `version`."""
    return f"v{version}/{script}"
