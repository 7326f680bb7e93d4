"""Utility functions for nodebridge."""

from nodebridge.utils.exceptions import (
    BridgeClosedError,
    CallTimeoutError,
    ErrorCategory,
    ModuleInstallError,
    NodeJsError,
    ProtocolError,
    ProvisioningError,
    RuntimeCallError,
    StartupError,
    classify_exception,
)
from nodebridge.utils.logging_utils import configure_logging

__all__ = [
    "BridgeClosedError",
    "CallTimeoutError",
    "ErrorCategory",
    "ModuleInstallError",
    "NodeJsError",
    "ProtocolError",
    "ProvisioningError",
    "RuntimeCallError",
    "StartupError",
    "classify_exception",
    "configure_logging",
]
