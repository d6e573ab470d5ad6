"""Custom exceptions for the UD-CO2S sensor library."""

from typing import Optional


class CO2SensorError(Exception):
    """Base exception for all CO2 sensor library errors."""

    pass


class ConfigurationError(CO2SensorError):
    """Raised when startup parameters are missing or invalid."""

    pass


class SerialIOError(CO2SensorError):
    """Raised when serial communication fails (port closed, write error, etc)."""

    pass


class ChannelOpenError(SerialIOError):
    """Raised when the serial device cannot be opened."""

    pass


class ReadTimeoutError(SerialIOError):
    """Raised when no terminated line arrives within the read timeout."""

    pass


class HandshakeFailure(CO2SensorError):
    """Raised when the device answers a handshake command with NG."""

    def __init__(self, command: str, line: Optional[str] = None) -> None:
        self.command = command
        self.line = line
        message = f"Command `{command}` failed"
        if line:
            message += f": {line!r}"
        super().__init__(message)


class HandshakeCancelled(CO2SensorError):
    """Raised when shutdown is requested while the handshake is in progress."""

    pass


class MalformedFrame(CO2SensorError):
    """Raised when a telemetry line matches the frame pattern but cannot be parsed."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed telemetry frame ({reason}): {line!r}")


class UnrecognizedLine(CO2SensorError):
    """Raised when a line is neither a telemetry frame nor a stop acknowledgement."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"Unrecognized line: {line!r}")
