"""Fake serial port that simulates a UD-CO2S sensor.

Emulates the command/response protocol (STP, ID?, STA with OK/NG answers)
and the periodic telemetry stream, with hooks for injecting chatter,
rejections, malformed frames and silence.
"""

import logging
import queue
import threading
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


class FakeSerial:
    """Deterministic simulator of UD-CO2S firmware behavior.

    Implements the wire protocol including:
    - CRLF-terminated commands and responses
    - "OK ..." acknowledgements, "NG" for rejected commands
    - Telemetry streaming after STA, "OK STP" after STP
    """

    def __init__(
        self,
        device_id: str = "ID=UD-CO2S,VER=1.0.0",
        period: float = 0.02,
        frames: Optional[Iterable[str]] = None,
        reject: Iterable[str] = (),
        chatter: Iterable[str] = (),
        ack_stop: bool = True,
        timeout: float = 0.5,
    ) -> None:
        """Initialize fake sensor.

        Args:
            device_id: Text returned after "OK " in answer to ID?
            period: Seconds between streamed telemetry lines
            frames: Lines to stream instead of generated telemetry. The
                    stream goes silent once they are exhausted.
            reject: Commands answered with NG
            chatter: Lines emitted before every acknowledgement
            ack_stop: Whether STP is acknowledged while streaming
            timeout: Readline timeout in seconds
        """
        self.device_id = device_id
        self.period = period
        self.reject = set(reject)
        self.chatter = list(chatter)
        self.ack_stop = ack_stop
        self.timeout = timeout

        # Every command received, in order
        self.commands: List[str] = []

        self._frames = iter(frames) if frames is not None else None
        self._sample = 0
        self._started = False

        # Output queue for lines to send to "host"
        self._output_queue: queue.Queue[bytes] = queue.Queue()

        # Input buffer for commands from "host"
        self._input_buffer = bytearray()

        # Threading for streaming
        self._stream_thread: Optional[threading.Thread] = None
        self._stop_streaming = threading.Event()
        self._lock = threading.Lock()

        self.is_open = True

    @property
    def streaming(self) -> bool:
        return self._stream_thread is not None and self._stream_thread.is_alive()

    def close(self) -> None:
        """Close the fake serial port."""
        self.is_open = False
        self._stop_streaming_thread()
        logger.debug("FakeSerial closed")

    def write(self, data: bytes) -> int:
        """Write data to device (from host perspective).

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written
        """
        if not self.is_open:
            raise RuntimeError("Port is closed")

        with self._lock:
            self._input_buffer.extend(data)
            logger.debug(f"FakeSerial received: {data!r}")
            self._process_input()

        return len(data)

    def readline(self) -> bytes:
        """Read one line from device output.

        Returns:
            Line as bytes with CRLF terminator, or b"" on timeout
        """
        if not self.is_open:
            raise RuntimeError("Port is closed")

        try:
            return self._output_queue.get(timeout=self.timeout)
        except queue.Empty:
            return b""

    def flush(self) -> None:
        """Flush output buffer (no-op for fake serial)."""
        pass

    def inject_line(self, text: str) -> None:
        """Queue an arbitrary line as if the device sent it."""
        self._send_line(text)

    def inject_raw(self, data: bytes) -> None:
        """Queue raw bytes (e.g. an unterminated fragment) as one read result."""
        self._output_queue.put(data)

    # ========================================================================
    # Internal: Input Processing
    # ========================================================================

    def _process_input(self) -> None:
        """Handle every complete CRLF-terminated command in the input buffer."""
        while b"\r\n" in self._input_buffer:
            idx = self._input_buffer.index(b"\r\n")
            cmd = bytes(self._input_buffer[:idx]).decode("ascii", errors="ignore")
            self._input_buffer = self._input_buffer[idx + 2 :]
            self.commands.append(cmd)
            self._handle_command(cmd)

    def _handle_command(self, cmd: str) -> None:
        for line in self.chatter:
            self._send_line(line)

        if cmd in self.reject:
            self._send_line("NG")
            return

        if cmd == "STP":
            was_started = self._started
            self._started = False
            self._stop_streaming_thread()
            if self.ack_stop or not was_started:
                self._send_line("OK STP")
        elif cmd == "ID?":
            self._send_line(f"OK {self.device_id}")
        elif cmd == "STA":
            self._send_line("OK STA")
            self._started = True
            self._start_streaming_thread()
        else:
            self._send_line("NG")

    # ========================================================================
    # Internal: Output Generation
    # ========================================================================

    def _send_line(self, text: str) -> None:
        """Send a line with CRLF terminator."""
        self._output_queue.put(text.encode("ascii") + b"\r\n")

    def _next_frame(self) -> Optional[str]:
        if self._frames is not None:
            return next(self._frames, None)

        self._sample += 1
        co2 = 400 + self._sample
        return f"CO2={co2},HUM=45.0,TMP=25.0"

    # ========================================================================
    # Internal: Threading
    # ========================================================================

    def _start_streaming_thread(self) -> None:
        """Start background thread to generate telemetry."""
        self._stop_streaming.clear()
        self._stream_thread = threading.Thread(
            target=self._streaming_loop,
            name="FakeSensorStream",
            daemon=True,
        )
        self._stream_thread.start()
        logger.debug("Started streaming thread")

    def _stop_streaming_thread(self) -> None:
        """Stop streaming thread if running."""
        if self._stream_thread and self._stream_thread.is_alive():
            self._stop_streaming.set()
            if self._stream_thread is not threading.current_thread():
                self._stream_thread.join(timeout=2.0)
            logger.debug("Stopped streaming thread")
        self._stream_thread = None

    def _streaming_loop(self) -> None:
        """Background loop sending one telemetry line per period."""
        while not self._stop_streaming.wait(timeout=self.period):
            frame = self._next_frame()
            if frame is None:
                logger.debug("Frame script exhausted, going silent")
                return
            self._send_line(frame)
