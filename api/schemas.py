"""Response models and timestamp serialization for the sensor API.

Timestamps are rendered with millisecond precision and an explicit UTC
offset, e.g. "2024-03-01T12:34:56.789Z" or "2024-03-01T21:34:56.789+09:00".
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from co2_sensor_lib.models import Reading


class ReadingResponse(BaseModel):
    """Response for GET /data."""
    co2: int
    humidity: float
    temperature: float
    timestamp: str


class HealthResponse(BaseModel):
    """Response for GET /health."""
    service: str
    version: str
    status: str
    has_data: bool
    session: Optional[str]
    device_id: Optional[str]


def format_timestamp(ts: datetime) -> str:
    """Serialize a timestamp as ISO 8601 with milliseconds and UTC offset.

    Naive timestamps are assumed to be UTC. A zero offset is written as "Z".
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)

    text = ts.isoformat(timespec="milliseconds")
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def parse_timestamp(text: str) -> datetime:
    """Parse a timestamp produced by format_timestamp.

    Raises:
        ValueError: If the text is not a valid offset-aware timestamp
    """
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {text!r}")
    return ts


def reading_to_response(reading: Reading) -> ReadingResponse:
    """Convert a Reading to its JSON response model."""
    return ReadingResponse(
        co2=reading.co2,
        humidity=reading.humidity,
        temperature=reading.temperature,
        timestamp=format_timestamp(reading.timestamp),
    )
