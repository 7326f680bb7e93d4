"""Configuration schema using Pydantic.

Single data model and defaults for the bridge, persisted to ~/.nodebridge/config.json.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class TransportMode(str, Enum):
    """How command envelopes reach the runtime process."""
    LINE = "line"  # long-lived process, envelopes over stdin/stdout
    SOCKET = "socket"  # long-lived process, envelopes over a loopback TCP socket
    ARGV = "argv"  # one process per call, envelope passed as argument


class RuntimeConfig(BaseModel):
    """Which runtime to provision and where to take it from."""
    version: str = "0.10.24"
    node_path: str | None = None  # Explicit executable to copy instead of the packaged one
    resource_root: str | None = None  # Directory laid out like nodebridge/resources
    system_fallback: bool = False  # Use `node` from PATH when no packaged executable exists


class TransportConfig(BaseModel):
    """Process handshake and call exchange settings."""
    mode: TransportMode = TransportMode.LINE
    startup_timeout_seconds: float = 30.0
    call_timeout_seconds: float | None = None  # None waits until the runtime answers
    poll_interval_seconds: float = Field(default=0.1, gt=0)
    stderr_settle_seconds: float = Field(default=0.25, ge=0)


class StagingConfig(BaseModel):
    """Per-call staging directories."""
    temp_dir: str | None = None  # Parent for working and staging dirs (system temp when unset)


class LoggingConfig(BaseModel):
    """Logging sinks."""
    level: str = "INFO"
    file: str | None = None


class BridgeConfig(BaseSettings):
    """Root configuration for nodebridge."""
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        env_prefix="NODEBRIDGE_",
        env_nested_delimiter="__"
    )
