"""
nodebridge - drive extension modules in a private node.js runtime from Python.
"""

__version__ = "0.1.0"
__logo__ = "⬢"

from nodebridge.config import BridgeConfig, TransportMode
from nodebridge.runtime import (
    ArchiveResolver,
    BundleResolver,
    ChainResolver,
    DirectoryResolver,
    MappingBundle,
    NodeJsExecutor,
    PackageResolver,
)
from nodebridge.utils.exceptions import (
    BridgeClosedError,
    CallTimeoutError,
    ModuleInstallError,
    NodeJsError,
    ProtocolError,
    ProvisioningError,
    RuntimeCallError,
    StartupError,
)
from nodebridge.vfs import MemoryVFS

__all__ = [
    "__version__",
    "BridgeConfig",
    "TransportMode",
    "NodeJsExecutor",
    "ArchiveResolver",
    "BundleResolver",
    "ChainResolver",
    "DirectoryResolver",
    "MappingBundle",
    "PackageResolver",
    "MemoryVFS",
    "NodeJsError",
    "ProvisioningError",
    "ModuleInstallError",
    "StartupError",
    "ProtocolError",
    "RuntimeCallError",
    "CallTimeoutError",
    "BridgeClosedError",
]
