"""Thread-safe single-slot store for the latest sensor reading."""

import logging
import threading
from typing import Optional

from co2_sensor_lib.models import Reading

logger = logging.getLogger(__name__)


class ReadingStore:
    """Holds the most recent Reading.

    One writer (the reader loop) replaces the whole value; any number of
    readers (HTTP handlers) fetch it. Readings are frozen, so handing out
    the reference under the lock never exposes a partially built value.
    """

    def __init__(self) -> None:
        self._latest: Optional[Reading] = None
        self._updates = 0
        self._lock = threading.Lock()

    def update(self, reading: Reading) -> None:
        """Replace the current reading (thread-safe).

        Args:
            reading: Fully constructed Reading
        """
        if not isinstance(reading, Reading):
            raise TypeError(f"Expected Reading, got {type(reading).__name__}")

        with self._lock:
            self._latest = reading
            self._updates += 1
        logger.debug(
            f"Stored reading at {reading.timestamp.isoformat()}: "
            f"co2={reading.co2} hum={reading.humidity:.2f} tmp={reading.temperature:.2f}"
        )

    def get(self) -> Optional[Reading]:
        """Get the current reading, or None if nothing was captured yet."""
        with self._lock:
            return self._latest

    @property
    def update_count(self) -> int:
        """Number of readings stored since creation."""
        with self._lock:
            return self._updates
