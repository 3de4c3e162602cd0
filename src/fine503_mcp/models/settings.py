"""Connection settings model."""

from __future__ import annotations

import os
from dataclasses import dataclass

from ..transport.serial_connection import DEFAULT_BAUD_RATE, READ_TIMEOUT

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class SerialSettings:
    """Serial port settings for the controller.

    ``baud_rate`` must match the controller's memory switch setting.
    """

    port: str = ""
    baud_rate: int = DEFAULT_BAUD_RATE
    timeout: float = READ_TIMEOUT
    echo: bool = False

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "baud_rate": self.baud_rate,
            "timeout": self.timeout,
            "echo": self.echo,
        }

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> SerialSettings:
        """Read ``FINE503_PORT``, ``FINE503_BAUD``, ``FINE503_TIMEOUT`` and
        ``FINE503_ECHO``, falling back to the defaults."""
        env = os.environ if environ is None else environ
        return cls(
            port=env.get("FINE503_PORT", ""),
            baud_rate=int(env.get("FINE503_BAUD", DEFAULT_BAUD_RATE)),
            timeout=float(env.get("FINE503_TIMEOUT", READ_TIMEOUT)),
            echo=env.get("FINE503_ECHO", "").strip().lower() in _TRUE_VALUES,
        )
