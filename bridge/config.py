"""Startup configuration for the bridge.

Values come from environment variables and are overridden by command-line
flags. Device path, bind host and port are required; nothing is opened
until the configuration validates.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from co2_sensor_lib import protocol
from co2_sensor_lib.errors import ConfigurationError

ENV_SERIAL_PORT = "SERIAL_PORT"
ENV_API_HOST = "API_HOST"
ENV_API_PORT = "API_PORT"
ENV_LOG_LEVEL = "LOG_LEVEL"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class BridgeConfig:
    """Resolved bridge settings.

    Attributes:
        device: Serial device path (e.g. "/dev/ttyACM0").
        host: HTTP bind address.
        port: HTTP bind port.
        baud: Serial baud rate.
        read_timeout_s: Longest silence tolerated from the sensor.
        settle_delay_s: Pause after each handshake command.
        shutdown_grace_s: Time in-flight HTTP requests get on shutdown.
        log_level: Root logging level name.
    """

    device: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    baud: int = protocol.BAUD_RATE
    read_timeout_s: float = protocol.READ_TIMEOUT
    settle_delay_s: float = protocol.COMMAND_SETTLE_DELAY
    shutdown_grace_s: float = protocol.SHUTDOWN_GRACE_PERIOD
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        """Build a config from environment variables (unset values stay None).

        Raises:
            ConfigurationError: If API_PORT is not an integer
        """
        env = os.environ if environ is None else environ

        port: Optional[int] = None
        raw_port = env.get(ENV_API_PORT)
        if raw_port:
            try:
                port = int(raw_port)
            except ValueError as e:
                raise ConfigurationError(
                    f"{ENV_API_PORT} must be an integer, got {raw_port!r}"
                ) from e

        return cls(
            device=env.get(ENV_SERIAL_PORT) or None,
            host=env.get(ENV_API_HOST) or None,
            port=port,
            log_level=env.get(ENV_LOG_LEVEL, "INFO"),
        )

    def with_overrides(self, **overrides) -> "BridgeConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    def validate(self) -> "BridgeConfig":
        """Check required parameters and ranges.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: On the first missing or invalid value
        """
        if not self.device:
            raise ConfigurationError("device is required")
        if not self.host:
            raise ConfigurationError("listening host is required")
        if self.port is None:
            raise ConfigurationError("listening port is required")
        if not (1 <= self.port <= 65535):
            raise ConfigurationError(f"port must be 1-65535, got {self.port}")
        if self.baud <= 0:
            raise ConfigurationError(f"baud must be positive, got {self.baud}")
        if self.read_timeout_s <= 0:
            raise ConfigurationError(
                f"read timeout must be positive, got {self.read_timeout_s}"
            )
        if self.settle_delay_s < 0:
            raise ConfigurationError(
                f"settle delay must not be negative, got {self.settle_delay_s}"
            )
        if self.shutdown_grace_s < 0:
            raise ConfigurationError(
                f"shutdown grace period must not be negative, got {self.shutdown_grace_s}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"unknown log level {self.log_level!r}")
        return self


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the bridge process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
