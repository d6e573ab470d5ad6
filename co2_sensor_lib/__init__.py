"""
co2_sensor_lib - Serial protocol library for UD-CO2S CO2/humidity/temperature sensors.

Arms the sensor with the STP / ID? / STA handshake, decodes its telemetry
stream and applies self-heating compensation.
"""

from co2_sensor_lib.errors import (
    ChannelOpenError,
    ConfigurationError,
    HandshakeCancelled,
    HandshakeFailure,
    MalformedFrame,
    ReadTimeoutError,
    SerialIOError,
    UnrecognizedLine,
)
from co2_sensor_lib.models import Command, FrameEvent, HandshakeState, Reading, SessionState
from co2_sensor_lib.reader import ReaderLoop
from co2_sensor_lib.reading_store import ReadingStore
from co2_sensor_lib.transport import Transport

__version__ = "0.1.0"

__all__ = [
    "ReaderLoop",
    "ReadingStore",
    "Transport",
    "Reading",
    "Command",
    "FrameEvent",
    "HandshakeState",
    "SessionState",
    "ConfigurationError",
    "SerialIOError",
    "ChannelOpenError",
    "ReadTimeoutError",
    "HandshakeFailure",
    "HandshakeCancelled",
    "MalformedFrame",
    "UnrecognizedLine",
]
