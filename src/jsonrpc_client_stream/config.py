"""Configuration for the correlator and its channel transports."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .messages import IdGenerator

# Environment overrides
ENV_TIMEOUT = "JSONRPC_CLIENT_TIMEOUT"
ENV_DELIMITER = "JSONRPC_CLIENT_DELIMITER"

DEFAULT_TIMEOUT_MS = 30 * 1000
DEFAULT_DELIMITER = "\n"


@dataclass
class CorrelatorConfig:
    """Construction options for a Correlator.

    ``timeout`` is in milliseconds. ``next_id`` defaults to a per-instance
    integer counter starting at 1.
    """

    timeout: float = DEFAULT_TIMEOUT_MS
    delimiter: str = DEFAULT_DELIMITER
    next_id: IdGenerator | None = None

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if not self.delimiter:
            raise ValueError("delimiter must not be empty")

    @classmethod
    def from_env(cls) -> CorrelatorConfig:
        """Build a config, taking overrides from the environment."""
        kwargs: dict[str, object] = {}
        if timeout := os.getenv(ENV_TIMEOUT):
            kwargs["timeout"] = float(timeout)
        if delimiter := os.getenv(ENV_DELIMITER):
            kwargs["delimiter"] = delimiter.encode("utf-8").decode("unicode_escape")
        return cls(**kwargs)  # type: ignore[arg-type]


@dataclass
class ClientTransportConfig:
    """Configuration for channel transports."""

    # Connection mode
    mode: str = "tcp"  # "tcp" | "stdio"

    # TCP settings
    host: str = "127.0.0.1"
    port: int = 4000

    # Stdio settings (for subprocess mode)
    command: list[str] = field(default_factory=list)
    working_directory: str | None = None
    env: dict[str, str] | None = None

    connect_timeout: float = 10.0
