"""Extract the runtime executable and bootstrap script into a private working directory."""

from __future__ import annotations

import shutil
import stat
import tempfile
from pathlib import Path
from typing import Any

from loguru import logger

from nodebridge.config.schema import TransportMode
from nodebridge.runtime.platform import (
    RuntimePlatform,
    bootstrap_resource,
    detect_platform,
    runtime_executable_resource,
)
from nodebridge.runtime.resources import ResourceLocator
from nodebridge.runtime.types import ProvisionedRuntime
from nodebridge.utils.exceptions import ProvisioningError

BOOTSTRAP_SCRIPTS: dict[TransportMode, str] = {
    TransportMode.LINE: "ipc.js",
    TransportMode.SOCKET: "ipc-socket.js",
    TransportMode.ARGV: "ipc-argv.js",
}


def _mark_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR)


def _copy_executable(
    version: str,
    runtime_platform: RuntimePlatform,
    locator: ResourceLocator,
    target: Path,
    node_path: str | None,
    system_fallback: bool,
) -> str:
    """Copy the runtime executable to `target`; return a description of its source."""
    if node_path:
        source = Path(node_path).expanduser()
        if not source.is_file():
            raise ProvisioningError(f"Configured node executable not found: {source}", resource=str(source))
        shutil.copyfile(source, target)
        return str(source)
    resource = runtime_executable_resource(version, runtime_platform)
    if locator.exists(resource):
        locator.copy_to(resource, target)
        return locator.describe(resource)
    if system_fallback:
        found = shutil.which("node")
        if found:
            shutil.copyfile(found, target)
            return found
    raise ProvisioningError(f"No node.js executable packaged for {runtime_platform}", resource=f"/{resource}")


def provision_runtime(
    version: str,
    transport: TransportMode,
    locator: ResourceLocator,
    *,
    runtime_platform: RuntimePlatform | None = None,
    node_path: str | None = None,
    system_fallback: bool = False,
    temp_dir: str | Path | None = None,
) -> ProvisionedRuntime:
    """
    Create a fresh working directory holding the node executable and bootstrap script.

    On any failure the directory is removed before ProvisioningError propagates.
    """
    working_dir: Path | None = None
    try:
        runtime_platform = runtime_platform or detect_platform()
        if temp_dir:
            Path(temp_dir).mkdir(parents=True, exist_ok=True)
        working_dir = Path(tempfile.mkdtemp(prefix=f"nodejs-v{version}", suffix=".dir", dir=temp_dir)).resolve()

        executable = working_dir / runtime_platform.executable_name
        source = _copy_executable(version, runtime_platform, locator, executable, node_path, system_fallback)
        _mark_executable(executable)

        script = BOOTSTRAP_SCRIPTS[transport]
        resource = bootstrap_resource(version, script)
        if not locator.exists(resource):
            raise ProvisioningError(f"Bootstrap script missing for node.js v{version}: {script}", resource=f"/{resource}")
        bootstrap = locator.copy_to(resource, working_dir / script)
    except ProvisioningError:
        _discard(working_dir)
        raise
    except OSError as e:
        _discard(working_dir)
        raise ProvisioningError(f"Unable to setup the node folder: {e}") from e

    logger.debug("Provisioned node.js v{} ({}) from {} into {}", version, runtime_platform, source, working_dir)
    return ProvisionedRuntime(working_dir=working_dir, executable=executable, bootstrap=bootstrap, version=version)


def _discard(working_dir: Path | None) -> None:
    if working_dir is None:
        return
    try:
        shutil.rmtree(working_dir)
    except OSError as e:
        logger.warning("Failed to delete node.js process directory {}: {}", working_dir, e)


def runtime_report(
    version: str,
    transport: TransportMode,
    locator: ResourceLocator,
    *,
    runtime_platform: RuntimePlatform | None = None,
    node_path: str | None = None,
    system_fallback: bool = False,
) -> dict[str, Any]:
    """Collect provisioning requirements and readiness checks without touching the disk."""
    try:
        runtime_platform = runtime_platform or detect_platform()
        platform_id = runtime_platform.identifier
        executable_resource = runtime_executable_resource(version, runtime_platform)
    except ProvisioningError as e:
        platform_id = ""
        executable_resource = ""
        suggestions = [str(e)]
    else:
        suggestions = []
    script_resource = bootstrap_resource(version, BOOTSTRAP_SCRIPTS[transport])
    system_node = shutil.which("node")
    checks = {
        "platformSupported": bool(platform_id),
        "nodePathExists": bool(node_path) and Path(node_path).expanduser().is_file(),
        "packagedExecutableExists": bool(executable_resource) and locator.exists(executable_resource),
        "systemNodeAvailable": bool(system_node),
        "bootstrapExists": locator.exists(script_resource),
    }
    executable_available = (
        checks["nodePathExists"]
        or checks["packagedExecutableExists"]
        or (system_fallback and checks["systemNodeAvailable"])
    )
    checks["executableAvailable"] = bool(executable_available)
    if node_path and not checks["nodePathExists"]:
        suggestions.append(f"Configured runtime.node_path does not exist: {node_path}")
    if not executable_available:
        if checks["systemNodeAvailable"]:
            suggestions.append("Set runtime.system_fallback=true to use the node found on PATH.")
        else:
            suggestions.append(
                f"Place a node executable at {locator.describe(executable_resource or script_resource)} "
                "or set runtime.node_path."
            )
    if not checks["bootstrapExists"]:
        suggestions.append(f"Bootstrap script missing: {locator.describe(script_resource)}")
    return {
        "platform": platform_id,
        "version": version,
        "transport": transport.value,
        "paths": {
            "resourceRoot": str(locator.root),
            "executable": locator.describe(executable_resource) if executable_resource else "",
            "bootstrap": locator.describe(script_resource),
            "nodePath": node_path or "",
            "systemNode": system_node or "",
        },
        "checks": checks,
        "suggestions": suggestions,
    }
