"""Runtime bridge: provisioning, supervision, transports and the executor facade."""

from nodebridge.runtime.executor import NodeJsExecutor
from nodebridge.runtime.installer import ModuleInstaller
from nodebridge.runtime.platform import RuntimePlatform, detect_platform
from nodebridge.runtime.provisioner import provision_runtime, runtime_report
from nodebridge.runtime.resolvers import (
    ArchiveResolver,
    BundleResolver,
    ChainResolver,
    DirectoryResolver,
    MappingBundle,
    PackageResolver,
)
from nodebridge.runtime.resources import ResourceLocator
from nodebridge.runtime.staging import StagingArea, staged_call
from nodebridge.runtime.types import ProcessStatus, RuntimeState, Task, VirtualFileSystem

__all__ = [
    "NodeJsExecutor",
    "ModuleInstaller",
    "RuntimePlatform",
    "detect_platform",
    "provision_runtime",
    "runtime_report",
    "ArchiveResolver",
    "BundleResolver",
    "ChainResolver",
    "DirectoryResolver",
    "MappingBundle",
    "PackageResolver",
    "ResourceLocator",
    "StagingArea",
    "staged_call",
    "ProcessStatus",
    "RuntimeState",
    "Task",
    "VirtualFileSystem",
]
