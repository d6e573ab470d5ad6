"""Data models for the UD-CO2S sensor library."""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from co2_sensor_lib import protocol


class Command(Enum):
    """Outbound commands understood by the sensor."""

    STOP = protocol.CMD_STOP
    IDENTIFY = protocol.CMD_IDENTIFY
    START = protocol.CMD_START


# Sent in order to arm the sensor; STOP first clears any stream left running
INIT_SEQUENCE: Tuple[Command, ...] = (Command.STOP, Command.IDENTIFY, Command.START)


class ResponseKind(Enum):
    """Classification of a single line read after issuing a command."""

    SUCCESS = "success"
    FAILURE = "failure"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Response:
    """A classified response line."""

    kind: ResponseKind
    line: str


class HandshakeState(Enum):
    """Handshake sequencer states."""

    IDLE = "idle"
    SENDING = "sending"
    AWAITING_RESPONSE = "awaiting_response"
    READY = "ready"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SessionState(Enum):
    """Reader loop session phases."""

    DISCONNECTED = "disconnected"
    HANDSHAKE = "handshake"
    STREAMING = "streaming"
    STOPPING = "stopping"
    CLOSED = "closed"


class FrameEvent(Enum):
    """Non-reading outcomes of decoding a streamed line."""

    NOT_A_FRAME = "not_a_frame"
    STOP_ACKNOWLEDGED = "stop_acknowledged"


@dataclass(frozen=True)
class RawFrame:
    """Uncompensated values exactly as reported by the sensor."""

    co2: int
    humidity: float
    temperature: float


@dataclass(frozen=True)
class Reading:
    """A compensated sensor reading.

    Attributes:
        co2: CO2 concentration in ppm.
        humidity: Relative humidity in percent, re-referenced to the
            corrected temperature.
        temperature: Ambient temperature in degrees Celsius.
        timestamp: Timezone-aware instant the frame was captured.
    """

    co2: int
    humidity: float
    temperature: float
    timestamp: datetime

    def __post_init__(self) -> None:
        """Validate reading values."""
        if self.co2 < 0:
            raise ValueError(f"co2 must be non-negative, got {self.co2}")
        if not (math.isfinite(self.humidity) and math.isfinite(self.temperature)):
            raise ValueError(
                f"humidity and temperature must be finite, got "
                f"{self.humidity}, {self.temperature}"
            )
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")


@dataclass(frozen=True)
class HandshakeResult:
    """Outcome of a successful handshake.

    Attributes:
        device_id: Line the sensor sent in answer to ID?, if any.
    """

    device_id: Optional[str] = None
