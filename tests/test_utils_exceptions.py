"""Tests for nodebridge.utils.exceptions module."""

from __future__ import annotations

import json
import subprocess

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


class TestExceptionClasses:
    """Test custom exception classes."""

    def test_base_error_to_dict(self) -> None:
        exc = NodeJsError("test message", code="TEST_CODE")
        assert exc.to_dict() == {
            "error": "TEST_CODE",
            "message": "test message",
            "category": ErrorCategory.FATAL.value,
            "details": {},
        }
        assert str(exc) == "test message"

    def test_runtime_call_error_keeps_message_verbatim(self) -> None:
        exc = RuntimeCallError("Error: cannot parse", output=[{"level": "ERROR", "message": "x"}])
        assert str(exc) == "Error: cannot parse"
        assert exc.category == ErrorCategory.RECOVERABLE
        assert exc.details["output"][0]["message"] == "x"

    def test_protocol_error_keeps_raw_text(self) -> None:
        exc = ProtocolError("garbage", reason="Invalid node.js response")
        assert exc.raw == "garbage"
        assert str(exc) == "Invalid node.js response: garbage"

    def test_startup_error_carries_stderr(self) -> None:
        exc = StartupError("failed", stderr="module not found")
        assert exc.stderr == "module not found"
        assert exc.details == {"stderr": "module not found"}

    def test_codes(self) -> None:
        assert ProvisioningError("x", resource="/v1/node").details == {"resource": "/v1/node"}
        assert ModuleInstallError("module not set").category == ErrorCategory.VALIDATION
        assert CallTimeoutError(2.5).details == {"timeout_seconds": 2.5}
        assert BridgeClosedError().code == "BRIDGE_CLOSED"


class TestClassifyException:
    def test_bridge_errors_keep_their_code(self) -> None:
        assert classify_exception(CallTimeoutError(1)) == ("TIMEOUT", ErrorCategory.TIMEOUT)
        assert classify_exception(RuntimeCallError("x")) == ("RUNTIME_ERROR", ErrorCategory.RECOVERABLE)

    def test_builtin_errors(self) -> None:
        assert classify_exception(FileNotFoundError("x")) == ("FILE_NOT_FOUND", ErrorCategory.NOT_FOUND)
        assert classify_exception(subprocess.TimeoutExpired("node", 1)) == ("TIMEOUT", ErrorCategory.TIMEOUT)
        assert classify_exception(json.JSONDecodeError("x", "doc", 0)) == ("JSON_PARSE_ERROR", ErrorCategory.VALIDATION)
        assert classify_exception(KeyError("x")) == ("INVALID_VALUE", ErrorCategory.VALIDATION)
        assert classify_exception(BrokenPipeError()) == ("CONNECTION_ERROR", ErrorCategory.RECOVERABLE)
        assert classify_exception(RuntimeError("x")) == ("INTERNAL_ERROR", ErrorCategory.FATAL)
