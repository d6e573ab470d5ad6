"""Tests for telemetry line decoding and response classification."""

from datetime import datetime, timezone

import pytest

from co2_sensor_lib.calibration import correct_humidity, correct_temperature
from co2_sensor_lib.errors import MalformedFrame, UnrecognizedLine
from co2_sensor_lib.models import FrameEvent, RawFrame, Reading, ResponseKind
from co2_sensor_lib.parsing import classify_response, decode_line, parse_frame, require_reading

TS = datetime(2024, 3, 1, 12, 34, 56, 789000, tzinfo=timezone.utc)


def test_decode_plain_frame() -> None:
    reading = decode_line("CO2=412,HUM=45.3,TMP=23.1", TS)

    assert isinstance(reading, Reading)
    assert reading.co2 == 412
    assert reading.temperature == correct_temperature(23.1)
    assert reading.humidity == pytest.approx(correct_humidity(45.3, 23.1), abs=1e-9)
    assert reading.timestamp == TS


def test_decode_frame_with_surrounding_text() -> None:
    plain = decode_line("CO2=412,HUM=45.3,TMP=23.1", TS)
    noisy = decode_line("garbage CO2=412,HUM=45.3,TMP=23.1 trailing", TS)

    assert noisy == plain


@pytest.mark.parametrize(
    "line",
    [
        "CO2=412,HUM=45.3,TMP=23.1;",
        "CO2=412,HUM=45.3,TMP=23.1OK",
        "[CO2=412,HUM=45.3,TMP=23.1]",
    ],
)
def test_decode_frame_with_text_touching_last_field(line: str) -> None:
    reading = decode_line(line, TS)

    assert reading == decode_line("CO2=412,HUM=45.3,TMP=23.1", TS)


@pytest.mark.parametrize("line", ["CO2=400,HUM=1,TMP=1.2.3", "CO2=400,HUM=1,TMP=-"])
def test_decode_bad_temperature_shape_is_malformed(line: str) -> None:
    with pytest.raises(MalformedFrame):
        decode_line(line, TS)


def test_decode_negative_temperature() -> None:
    reading = decode_line("CO2=500,HUM=30.0,TMP=-2.5", TS)

    assert isinstance(reading, Reading)
    assert reading.temperature == -7.0


def test_decode_defaults_timestamp_to_now_utc() -> None:
    before = datetime.now(timezone.utc)
    reading = decode_line("CO2=412,HUM=45.3,TMP=23.1")
    after = datetime.now(timezone.utc)

    assert isinstance(reading, Reading)
    assert before <= reading.timestamp <= after


def test_decode_stop_acknowledgement() -> None:
    assert decode_line("OK STP") == FrameEvent.STOP_ACKNOWLEDGED
    assert decode_line("OK STP ") == FrameEvent.STOP_ACKNOWLEDGED


@pytest.mark.parametrize("line", ["hello world", "", "OK STA", "OK", "NG", "CO2=412"])
def test_decode_not_a_frame(line: str) -> None:
    assert decode_line(line) == FrameEvent.NOT_A_FRAME


@pytest.mark.parametrize(
    "line",
    [
        "CO2=abc,HUM=1,TMP=2",
        "CO2=,HUM=1,TMP=2",
        "CO2=400,HUM=x,TMP=2",
        "CO2=400,HUM=1.2.3,TMP=2",
        "CO2=400,HUM=-1,TMP=2",
        "CO2=400,HUM=1,TMP=",
        "CO2=400,HUM=1,TMP=nan",
        "CO2=-5,HUM=1,TMP=2",
    ],
)
def test_decode_malformed_frame_raises(line: str) -> None:
    with pytest.raises(MalformedFrame) as exc_info:
        decode_line(line, TS)

    assert exc_info.value.line == line


def test_malformed_frame_never_yields_zero_reading() -> None:
    with pytest.raises(MalformedFrame):
        decode_line("CO2=abc,HUM=1,TMP=2", TS)

    # partial parse must not leak through the raw stage either
    with pytest.raises(MalformedFrame):
        parse_frame("CO2=abc,HUM=1,TMP=2")


def test_decode_uncompensatable_temperature_is_malformed() -> None:
    with pytest.raises(MalformedFrame):
        decode_line("CO2=400,HUM=50,TMP=-237.3", TS)


def test_parse_frame_returns_raw_values() -> None:
    assert parse_frame("x CO2=1234,HUM=60.5,TMP=30.25 y") == RawFrame(
        co2=1234, humidity=60.5, temperature=30.25
    )
    assert parse_frame("nothing here") is None


def test_require_reading() -> None:
    assert require_reading("CO2=412,HUM=45.3,TMP=23.1", TS).co2 == 412

    with pytest.raises(UnrecognizedLine):
        require_reading("hello world")
    with pytest.raises(UnrecognizedLine):
        require_reading("OK STP")


@pytest.mark.parametrize(
    "line,kind",
    [
        ("OK", ResponseKind.SUCCESS),
        ("OK STP", ResponseKind.SUCCESS),
        ("OK ID=UD-CO2S", ResponseKind.SUCCESS),
        ("NG", ResponseKind.FAILURE),
        ("NG 01", ResponseKind.FAILURE),
        ("CO2=412,HUM=45.3,TMP=23.1", ResponseKind.UNRECOGNIZED),
        ("", ResponseKind.UNRECOGNIZED),
        (" OK", ResponseKind.UNRECOGNIZED),
    ],
)
def test_classify_response(line: str, kind: ResponseKind) -> None:
    response = classify_response(line)
    assert response.kind == kind
    assert response.line == line
