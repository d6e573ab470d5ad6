"""Pure functions for decoding streamed sensor lines."""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from co2_sensor_lib import protocol
from co2_sensor_lib.calibration import compensate
from co2_sensor_lib.errors import MalformedFrame, UnrecognizedLine
from co2_sensor_lib.models import FrameEvent, RawFrame, Reading, Response, ResponseKind

logger = logging.getLogger(__name__)

DecodeResult = Union[Reading, FrameEvent]


def classify_response(line: str) -> Response:
    """Classify a line read while waiting for a command acknowledgement.

    Args:
        line: Raw line from device (terminator already stripped)

    Returns:
        Response with SUCCESS for "OK...", FAILURE for "NG...",
        UNRECOGNIZED for anything else
    """
    if line.startswith(protocol.RESPONSE_OK):
        return Response(ResponseKind.SUCCESS, line)
    if line.startswith(protocol.RESPONSE_NG):
        return Response(ResponseKind.FAILURE, line)
    return Response(ResponseKind.UNRECOGNIZED, line)


def is_stop_acknowledgement(line: str) -> bool:
    """Check whether a line acknowledges a STP sent while streaming."""
    return line.startswith(protocol.RESPONSE_STOP_ACK)


def _parse_number(
    line: str, name: str, token: str, pattern: "re.Pattern[str]", convert: Callable[[str], Any]
) -> Any:
    if not pattern.fullmatch(token):
        raise MalformedFrame(line, f"invalid {name} value {token!r}")
    try:
        value = convert(token)
        finite = math.isfinite(value)
    except (ValueError, OverflowError) as e:
        raise MalformedFrame(line, f"invalid {name} value {token!r}") from e
    if not finite:
        raise MalformedFrame(line, f"non-finite {name} value {token!r}")
    return value


def parse_frame(line: str) -> Optional[RawFrame]:
    """Extract raw telemetry values from a line.

    The frame is searched for anywhere in the line, so prefixes and
    trailing text are tolerated. Example: "CO2=412,HUM=45.3,TMP=23.1"

    Args:
        line: Raw line from device

    Returns:
        RawFrame, or None if the line contains no telemetry frame

    Raises:
        MalformedFrame: If a frame is present but any field fails to parse
    """
    match = protocol.RE_TELEMETRY.search(line)
    if not match:
        if protocol.RE_TELEMETRY_SHAPE.search(line):
            raise MalformedFrame(line, "unparseable telemetry fields")
        return None

    co2 = _parse_number(line, "CO2", match.group(1), protocol.RE_CO2_VALUE, int)
    humidity = _parse_number(
        line, "HUM", match.group(2), protocol.RE_HUMIDITY_VALUE, float
    )
    temperature = _parse_number(
        line, "TMP", match.group(3), protocol.RE_TEMPERATURE_VALUE, float
    )
    return RawFrame(co2=co2, humidity=humidity, temperature=temperature)


def decode_line(line: str, timestamp: Optional[datetime] = None) -> DecodeResult:
    """Decode one streamed line.

    Args:
        line: Raw line from device (CRLF should be stripped by caller)
        timestamp: Capture instant. Defaults to now (UTC).

    Returns:
        Compensated Reading for a telemetry frame,
        FrameEvent.STOP_ACKNOWLEDGED for "OK STP",
        FrameEvent.NOT_A_FRAME for anything else

    Raises:
        MalformedFrame: If the line holds a frame that cannot be parsed or
            whose values cannot be compensated
    """
    if is_stop_acknowledgement(line):
        return FrameEvent.STOP_ACKNOWLEDGED

    raw = parse_frame(line)
    if raw is None:
        return FrameEvent.NOT_A_FRAME

    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    try:
        return compensate(raw, timestamp)
    except (ZeroDivisionError, OverflowError, ValueError) as e:
        raise MalformedFrame(line, f"cannot compensate values: {e}") from e


def require_reading(line: str, timestamp: Optional[datetime] = None) -> Reading:
    """Decode a line that must be a telemetry frame.

    Raises:
        UnrecognizedLine: If the line is not a frame (including "OK STP")
        MalformedFrame: If the frame cannot be parsed
    """
    result = decode_line(line, timestamp)
    if isinstance(result, FrameEvent):
        raise UnrecognizedLine(line)
    return result
