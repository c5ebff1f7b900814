"""Bus configuration for entry points that build their own driver."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .transport.serial_connection import DEFAULT_BAUDRATE

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_TIMEOUT = 0.1

ENV_PORT = "DYNAMIXEL_PORT"
ENV_BAUDRATE = "DYNAMIXEL_BAUDRATE"
ENV_TIMEOUT = "DYNAMIXEL_TIMEOUT"


@dataclass
class BusConfig:
    """Serial device, baud rate and per-exchange reply timeout (seconds)."""

    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if self.baudrate <= 0:
            raise ValueError(f"Baud rate must be positive, got {self.baudrate}")
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> BusConfig:
        """Build a config from ``DYNAMIXEL_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        try:
            return cls(
                port=env.get(ENV_PORT, DEFAULT_PORT),
                baudrate=int(env.get(ENV_BAUDRATE, DEFAULT_BAUDRATE)),
                timeout=float(env.get(ENV_TIMEOUT, DEFAULT_TIMEOUT)),
            )
        except ValueError as e:
            raise ValueError(f"Invalid bus configuration in environment: {e}") from e

    def to_dict(self) -> dict:
        return {"port": self.port, "baudrate": self.baudrate, "timeout": self.timeout}
