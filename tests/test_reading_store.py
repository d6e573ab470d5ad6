"""Tests for the single-slot reading store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from co2_sensor_lib.models import Reading
from co2_sensor_lib.reading_store import ReadingStore

BASE_TS = datetime(2024, 3, 1, tzinfo=timezone.utc)


def make_reading(i: int) -> Reading:
    return Reading(
        co2=400 + i,
        humidity=40.0 + i,
        temperature=20.0 + i,
        timestamp=BASE_TS + timedelta(seconds=i),
    )


def test_store_starts_empty() -> None:
    store = ReadingStore()

    assert store.get() is None
    assert store.update_count == 0


def test_update_overwrites() -> None:
    store = ReadingStore()
    store.update(make_reading(1))
    store.update(make_reading(2))

    assert store.get() == make_reading(2)
    assert store.update_count == 2


def test_update_rejects_non_readings() -> None:
    store = ReadingStore()

    with pytest.raises(TypeError):
        store.update({"co2": 400})  # type: ignore[arg-type]
    assert store.get() is None


def test_reading_is_immutable() -> None:
    reading = make_reading(1)

    with pytest.raises(Exception):
        reading.co2 = 0  # type: ignore[misc]


def test_reading_validation() -> None:
    with pytest.raises(ValueError):
        Reading(co2=-1, humidity=1.0, temperature=1.0, timestamp=BASE_TS)
    with pytest.raises(ValueError):
        Reading(co2=1, humidity=float("nan"), temperature=1.0, timestamp=BASE_TS)
    with pytest.raises(ValueError):
        Reading(co2=1, humidity=1.0, temperature=1.0, timestamp=datetime(2024, 3, 1))


def test_concurrent_writers_and_readers_see_whole_readings() -> None:
    """Every observed reading is one that was written, with consistent fields."""
    store = ReadingStore()
    writes_per_writer = 2000
    stop = threading.Event()
    bad = []
    observed = []

    def writer(offset: int) -> None:
        for i in range(writes_per_writer):
            store.update(make_reading(offset + i))

    def reader() -> None:
        while not stop.is_set():
            reading = store.get()
            if reading is None:
                continue
            i = reading.co2 - 400
            if (
                reading.humidity != 40.0 + i
                or reading.temperature != 20.0 + i
                or reading.timestamp != BASE_TS + timedelta(seconds=i)
            ):
                bad.append(reading)
            observed.append(i)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    writers = [
        threading.Thread(target=writer, args=(n * writes_per_writer,)) for n in range(2)
    ]
    for thread in readers + writers:
        thread.start()
    for thread in writers:
        thread.join()
    stop.set()
    for thread in readers:
        thread.join()

    assert not bad
    assert observed
    assert store.update_count == 2 * writes_per_writer
