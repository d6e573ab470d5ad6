"""Wire protocol constants and patterns for the UD-CO2S sensor.

The sensor speaks a line-oriented ASCII protocol at 115200 baud 8N1.
Commands are three characters terminated with CRLF; the device answers
each one with a line starting with ``OK`` or ``NG``, then (after ``STA``)
streams one telemetry line every few seconds:

    CO2=412,HUM=45.3,TMP=23.1
"""

import re
from typing import Final

# ============================================================================
# Serial Line Settings
# ============================================================================

BAUD_RATE: Final[int] = 115200

# Commands are terminated with CRLF
INPUT_TERMINATOR: Final[bytes] = b"\r\n"

# Device sends CRLF; LF alone is accepted as well
OUTPUT_TERMINATOR: Final[bytes] = b"\r\n"

# ============================================================================
# Commands
# ============================================================================

CMD_STOP: Final[str] = "STP"  # Stop streaming
CMD_IDENTIFY: Final[str] = "ID?"  # Query device identification
CMD_START: Final[str] = "STA"  # Start streaming

# ============================================================================
# Response Prefixes
# ============================================================================

RESPONSE_OK: Final[str] = "OK"
RESPONSE_NG: Final[str] = "NG"

# Acknowledgement of STP once streaming is running; ends the stream
RESPONSE_STOP_ACK: Final[str] = "OK STP"

# ============================================================================
# Timing Constants (seconds)
# ============================================================================

# Pause after writing a handshake command before listening for the answer
COMMAND_SETTLE_DELAY: Final[float] = 0.1

# No terminated line within this window is a fatal wiring/hardware fault
READ_TIMEOUT: Final[float] = 10.0

# Pause between the final STP and closing the port
CLOSE_DELAY: Final[float] = 0.1

# Grace period for in-flight HTTP requests on shutdown
SHUTDOWN_GRACE_PERIOD: Final[float] = 5.0

# ============================================================================
# Telemetry Patterns
# ============================================================================

# Located anywhere in the line, so text before or after the frame is
# tolerated. Captured fields are validated separately.
RE_TELEMETRY: Final[re.Pattern[str]] = re.compile(
    r"CO2=(\d+)"  # Group 1: CO2 ppm
    r",HUM=([0-9.]+)"  # Group 2: relative humidity
    r",TMP=([0-9.-]+)"  # Group 3: temperature
)

# Frame-shaped line whose fields do not fit RE_TELEMETRY
RE_TELEMETRY_SHAPE: Final[re.Pattern[str]] = re.compile(r"CO2=[^,]*,HUM=[^,]*,TMP=")

RE_CO2_VALUE: Final[re.Pattern[str]] = re.compile(r"\d+")
RE_HUMIDITY_VALUE: Final[re.Pattern[str]] = re.compile(r"\d+(?:\.\d*)?|\.\d+")
RE_TEMPERATURE_VALUE: Final[re.Pattern[str]] = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

# ============================================================================
# Calibration Constants
# ============================================================================

# The sensor reads warm from self-heating
TEMPERATURE_OFFSET: Final[float] = 4.5

# Magnus-type saturation vapor pressure coefficients
MAGNUS_A: Final[float] = 7.5
MAGNUS_B: Final[float] = 237.3
