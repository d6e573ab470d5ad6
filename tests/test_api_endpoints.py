"""Tests for the FastAPI endpoints (no hardware).

Tests verify:
- 503 before any reading, 200 with the reading afterwards
- Timestamp format and round-trip
- Health endpoint
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from api import main as api_module
from api.schemas import format_timestamp, parse_timestamp
from co2_sensor_lib.calibration import correct_humidity
from co2_sensor_lib.models import Reading
from co2_sensor_lib.parsing import decode_line
from co2_sensor_lib.reader import ReaderLoop
from co2_sensor_lib.reading_store import ReadingStore


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global singletons before each test."""
    api_module._store = None
    api_module._reader = None
    yield
    api_module._store = None
    api_module._reader = None


@pytest.fixture
def store():
    store = ReadingStore()
    api_module.attach(store)
    return store


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(api_module.app)


# =============================================================================
# GET /data
# =============================================================================

def test_data_without_store_is_unavailable(client):
    response = client.get("/data")
    assert response.status_code == 503


def test_data_before_first_reading_is_unavailable(client, store):
    response = client.get("/data")

    assert response.status_code == 503
    assert response.json() == {"detail": "no data"}


def test_data_after_reading(client, store):
    ts = datetime(2024, 3, 1, 12, 34, 56, 789000, tzinfo=timezone.utc)
    store.update(decode_line("CO2=412,HUM=45.3,TMP=23.1", ts))

    response = client.get("/data")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    data = response.json()
    assert set(data) == {"co2", "humidity", "temperature", "timestamp"}
    assert data["co2"] == 412
    assert data["temperature"] == pytest.approx(18.6)
    assert data["humidity"] == pytest.approx(correct_humidity(45.3, 23.1))
    assert data["timestamp"] == "2024-03-01T12:34:56.789Z"
    assert parse_timestamp(data["timestamp"]) == ts


def test_data_tracks_latest_reading(client, store):
    ts = datetime(2024, 3, 1, tzinfo=timezone.utc)
    store.update(Reading(co2=400, humidity=40.0, temperature=20.0, timestamp=ts))
    store.update(
        Reading(co2=800, humidity=50.0, temperature=21.0, timestamp=ts + timedelta(seconds=5))
    )

    data = client.get("/data").json()

    assert data["co2"] == 800
    assert data["timestamp"] == "2024-03-01T00:00:05.000Z"


# =============================================================================
# Timestamps
# =============================================================================

def test_format_timestamp_with_offset():
    tz = timezone(timedelta(hours=9))
    ts = datetime(2024, 3, 1, 21, 34, 56, 789123, tzinfo=tz)

    assert format_timestamp(ts) == "2024-03-01T21:34:56.789+09:00"


def test_format_naive_timestamp_assumed_utc():
    assert format_timestamp(datetime(2024, 3, 1)) == "2024-03-01T00:00:00.000Z"


@pytest.mark.parametrize("offset_hours", [0, 9, -5])
def test_timestamp_round_trip_to_milliseconds(offset_hours):
    tz = timezone(timedelta(hours=offset_hours))
    ts = datetime(2024, 3, 1, 12, 34, 56, 789654, tzinfo=tz)

    parsed = parse_timestamp(format_timestamp(ts))

    assert parsed == ts.replace(microsecond=789000)
    assert parsed.utcoffset() == ts.utcoffset()


def test_parse_timestamp_requires_offset():
    with pytest.raises(ValueError):
        parse_timestamp("2024-03-01T12:34:56.789")


# =============================================================================
# Health and errors
# =============================================================================

def test_health_without_reader(client, store):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "online"
    assert data["has_data"] is False
    assert data["session"] is None
    assert data["device_id"] is None


def test_health_reports_reader_session(client):
    store = ReadingStore()
    reader = ReaderLoop(store, lambda: None)
    api_module.attach(store, reader)
    store.update(decode_line("CO2=412,HUM=45.3,TMP=23.1"))

    data = client.get("/health").json()

    assert data["has_data"] is True
    assert data["session"] == "disconnected"
