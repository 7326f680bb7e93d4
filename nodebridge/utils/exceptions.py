"""
Exception hierarchy and error classification for nodebridge.

Provides:
- A base error carrying a stable code, a category and details
- One subclass per failure domain of the bridge (provisioning, setup, startup,
  protocol, runtime-reported errors, timeouts, shutdown)
- Classification of arbitrary exceptions into categories
"""

from __future__ import annotations

import json
import subprocess
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Coarse buckets for deciding whether a failed call is worth retrying."""
    FATAL = "fatal"
    RECOVERABLE = "recoverable"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"


class NodeJsError(Exception):
    """Base exception for all bridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "NODEJS_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class ProvisioningError(NodeJsError):
    """The runtime executable or bootstrap script could not be put in place."""

    def __init__(self, message: str, resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(message, code="PROVISIONING_FAILED", category=ErrorCategory.FATAL, details=details)


class ModuleInstallError(NodeJsError):
    """Extension module could not be installed, or is missing / installed twice."""

    def __init__(self, message: str, url: str | None = None):
        details = {"url": url} if url else {}
        super().__init__(message, code="MODULE_INSTALL_FAILED", category=ErrorCategory.VALIDATION, details=details)


class StartupError(NodeJsError):
    """The runtime process did not complete its readiness handshake."""

    def __init__(self, message: str, stderr: str | None = None):
        details = {"stderr": stderr} if stderr else {}
        super().__init__(message, code="STARTUP_FAILED", category=ErrorCategory.FATAL, details=details)
        self.stderr = stderr or ""


class ProtocolError(NodeJsError):
    """The runtime answered with text that is not a response envelope."""

    def __init__(self, raw: str, reason: str | None = None):
        message = raw if not reason else f"{reason}: {raw}"
        super().__init__(message, code="PROTOCOL_ERROR", category=ErrorCategory.RECOVERABLE, details={"raw": raw})
        self.raw = raw


class RuntimeCallError(NodeJsError):
    """The runtime reported a failure for a single call (error field or stderr output)."""

    def __init__(self, message: str, output: list[Any] | None = None):
        details = {"output": output} if output else {}
        super().__init__(message, code="RUNTIME_ERROR", category=ErrorCategory.RECOVERABLE, details=details)


class CallTimeoutError(NodeJsError):
    """A call did not produce a response within the configured timeout."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"node.js call timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"timeout_seconds": timeout_seconds},
        )


class BridgeClosedError(NodeJsError):
    """The bridge was disposed before or during the call."""

    def __init__(self, message: str = "node.js bridge has been disposed"):
        super().__init__(message, code="BRIDGE_CLOSED", category=ErrorCategory.FATAL)


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory]:
    """
    Classify an exception and return (error_code, category).

    Bridge errors keep their own code; everything else is mapped by type.
    """
    if isinstance(exc, NodeJsError):
        return exc.code, exc.category

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.NOT_FOUND

    if isinstance(exc, (TimeoutError, subprocess.TimeoutExpired)):
        return "TIMEOUT", ErrorCategory.TIMEOUT

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION

    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION

    if isinstance(exc, (ConnectionError, BrokenPipeError)):
        return "CONNECTION_ERROR", ErrorCategory.RECOVERABLE

    return "INTERNAL_ERROR", ErrorCategory.FATAL
