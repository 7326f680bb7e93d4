"""Public entry point: one node.js bridge with a private runtime and module."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from loguru import logger

from nodebridge.config.schema import BridgeConfig
from nodebridge.runtime.codec import ProtocolCodec
from nodebridge.runtime.installer import ModuleInstaller
from nodebridge.runtime.platform import RuntimePlatform
from nodebridge.runtime.provisioner import provision_runtime
from nodebridge.runtime.resolvers import ResourceResolver
from nodebridge.runtime.resources import ResourceLocator
from nodebridge.runtime.supervisor import ProcessSupervisor
from nodebridge.runtime.transports import create_transport
from nodebridge.runtime.types import ProcessStatus, RuntimeState, Task, VirtualFileSystem
from nodebridge.runtime.worker import Worker
from nodebridge.utils.exceptions import BridgeClosedError, ModuleInstallError


class NodeJsExecutor:
    """
    Drives an extension module inside a private node.js process.

    Usage:
        with NodeJsExecutor() as executor:
            executor.set_module(DirectoryResolver("modules"), "uglify")
            result = executor.run(vfs, "/app.js", {"compress": True})

    Construction provisions the working directory (raising ProvisioningError
    on failure). The process itself is started lazily by the first `run` and
    restarted by the next one after a crash.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        locator: ResourceLocator | None = None,
        platform: RuntimePlatform | None = None,
    ):
        self.config = config or BridgeConfig()
        runtime_cfg = self.config.runtime
        self.locator = locator or ResourceLocator(runtime_cfg.resource_root)
        self.transport = create_transport(self.config.transport.mode)
        self.runtime = provision_runtime(
            runtime_cfg.version,
            self.transport.mode,
            self.locator,
            runtime_platform=platform,
            node_path=runtime_cfg.node_path,
            system_fallback=runtime_cfg.system_fallback,
            temp_dir=self.config.staging.temp_dir,
        )
        self._stop = threading.Event()
        self.supervisor = ProcessSupervisor(self.runtime, self.transport, self.config.transport, self._stop)
        self.codec = ProtocolCodec(self.supervisor, self.transport)
        self.worker = Worker(self.supervisor, self.codec, stop_event=self._stop, temp_dir=self.config.staging.temp_dir)
        self.installer = ModuleInstaller(self.runtime.working_dir)
        self._lock = threading.Lock()
        self._module_set = False
        self.worker.start()

    @property
    def working_dir(self) -> Path:
        return self.runtime.working_dir

    @property
    def state(self) -> RuntimeState:
        return self.supervisor.state

    def status(self) -> ProcessStatus:
        return self.supervisor.status()

    def set_module(self, resolver: ResourceResolver, path: str, script: str | None = None) -> None:
        """Install the extension module (and optional entry script) into the working directory."""
        with self._lock:
            if self.worker.closed:
                raise BridgeClosedError()
            if self._module_set:
                raise ModuleInstallError("module already set")
            urls = self.installer.install(resolver, path, script)
            self._module_set = True
        logger.info("node.js module {} installed from {} source(s)", path, len(urls))

    def run(self, vfs: VirtualFileSystem, infile: str | None = None, options: dict[str, Any] | None = None) -> str | None:
        """
        Execute the module against `vfs` and return the reported result path.

        The VFS is updated with the files the module wrote (after a new
        snapshot is stacked). Errors reported by the module raise RuntimeCallError.
        """
        if self.worker.closed:
            raise BridgeClosedError()
        if not self._module_set:
            raise ModuleInstallError("module not set")
        return self.worker.submit(Task(vfs=vfs, infile=infile, options=dict(options or {})))

    def dispose(self) -> None:
        """Stop the process and delete the working directory. Safe to call more than once."""
        self.worker.dispose()

    def __enter__(self) -> "NodeJsExecutor":
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()
