"""Reader loop: handshake, streaming decode, and the shutdown exchange."""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from co2_sensor_lib import protocol
from co2_sensor_lib.errors import MalformedFrame, ReadTimeoutError, SerialIOError
from co2_sensor_lib.handshake import HandshakeSequencer
from co2_sensor_lib.models import Command, FrameEvent, Reading, SessionState
from co2_sensor_lib.parsing import decode_line
from co2_sensor_lib.reading_store import ReadingStore
from co2_sensor_lib.transport import Transport

logger = logging.getLogger(__name__)


class ReaderLoop:
    """Owns the serial session for the lifetime of the process.

    Opens the channel, arms the sensor, then decodes streamed lines into
    the ReadingStore until the device acknowledges STP, the stream ends,
    or a fatal error occurs. The channel is closed on every exit path.
    """

    def __init__(
        self,
        store: ReadingStore,
        open_transport: Callable[[], Transport],
        cancel_event: Optional[threading.Event] = None,
        settle_delay: float = protocol.COMMAND_SETTLE_DELAY,
        close_delay: float = protocol.CLOSE_DELAY,
        drain_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """Initialize reader loop.

        Args:
            store: Destination for decoded readings
            open_transport: Factory returning an open Transport; may raise
                ChannelOpenError
            cancel_event: Shutdown signal shared with the query server
            settle_delay: Pause after each handshake command
            close_delay: Pause between the final STP and closing the port
            drain_timeout: How long to wait for "OK STP" after a shutdown
                STP. Defaults to the transport read timeout.
            sleep: Sleep function (injectable for tests)
            clock: Source of capture timestamps
        """
        self._store = store
        self._open_transport = open_transport
        self._cancel_event = cancel_event or threading.Event()
        self._settle_delay = settle_delay
        self._close_delay = close_delay
        self._drain_timeout = drain_timeout
        self._sleep = sleep
        self._clock = clock

        self._state = SessionState.DISCONNECTED
        self._stop_sent = False
        self._device_id: Optional[str] = None

    @property
    def state(self) -> SessionState:
        """Current session phase."""
        return self._state

    @property
    def device_id(self) -> Optional[str]:
        """Identification line returned by the sensor during the handshake."""
        return self._device_id

    @property
    def stop_sent(self) -> bool:
        return self._stop_sent

    def run(self) -> None:
        """Run the session to completion.

        Returns normally after a clean stop (stop acknowledged, end of
        stream, or shutdown exchange finished).

        Raises:
            ChannelOpenError: If the device cannot be opened
            HandshakeFailure: If the device rejects an init command
            HandshakeCancelled: If shutdown was requested during the handshake
            ReadTimeoutError: If the device goes silent while streaming
            SerialIOError: On other I/O failures
        """
        self._stop_sent = False
        transport = self._open_transport()

        try:
            self._state = SessionState.HANDSHAKE
            sequencer = HandshakeSequencer(
                transport,
                cancel_event=self._cancel_event,
                settle_delay=self._settle_delay,
                sleep=self._sleep,
            )
            result = sequencer.run()
            self._device_id = result.device_id

            self._state = SessionState.STREAMING
            self._stream(transport)
        finally:
            self._release(transport)

        logger.info("Reader stopped.")

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _stream(self, transport: Transport) -> None:
        """Read and decode lines until the stream is finished."""
        drain_timeout = self._drain_timeout
        if drain_timeout is None:
            drain_timeout = transport.read_timeout
        deadline: Optional[float] = None

        while True:
            if self._cancel_event.is_set() and not self._stop_sent:
                self._request_stop(transport)
                deadline = time.monotonic() + drain_timeout

            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("Stop was not acknowledged in time, giving up")
                return

            try:
                line = transport.readline()
            except ReadTimeoutError:
                if self._stop_sent:
                    logger.warning("Timed out waiting for stop acknowledgement")
                    return
                raise

            if line is None:
                logger.info("Serial stream ended")
                return

            if self._handle_line(line):
                logger.info("Stop acknowledged by device")
                return

    def _handle_line(self, line: str) -> bool:
        """Decode one line. Returns True when the stream is finished."""
        try:
            result = decode_line(line, self._clock())
        except MalformedFrame as e:
            logger.warning(f"Skipping malformed frame: {e}")
            return False

        if isinstance(result, Reading):
            self._store.update(result)
            return False

        if result == FrameEvent.STOP_ACKNOWLEDGED:
            return True

        logger.info(f"Read unmatched line: {line!r}")
        return False

    def _request_stop(self, transport: Transport) -> None:
        logger.info("Shutdown requested, stopping sensor stream...")
        self._state = SessionState.STOPPING
        transport.write_cmd(Command.STOP.value)
        self._stop_sent = True

    def _release(self, transport: Transport) -> None:
        """Best-effort STP, then close the port."""
        if not self._stop_sent and transport.is_open:
            try:
                transport.write_cmd(Command.STOP.value)
                self._stop_sent = True
            except SerialIOError as e:
                logger.warning(f"Could not send final STP: {e}")
            else:
                self._sleep(self._close_delay)

        transport.close()
        self._state = SessionState.CLOSED
