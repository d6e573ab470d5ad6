"""Serial transport layer for UD-CO2S sensor communication."""

import logging
from typing import Optional, Protocol

from co2_sensor_lib import protocol
from co2_sensor_lib.errors import ChannelOpenError, ReadTimeoutError, SerialIOError

logger = logging.getLogger(__name__)


class SerialLike(Protocol):
    """Protocol for serial port interface (allows test doubles)."""

    def write(self, data: bytes) -> int:
        """Write bytes to serial port."""
        ...

    def readline(self) -> bytes:
        """Read a line from serial port, or whatever arrived before the timeout."""
        ...

    def flush(self) -> None:
        """Flush output buffer (force transmission)."""
        ...

    def close(self) -> None:
        """Close serial port."""
        ...

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        ...


class Transport:
    """Line channel over a serial port.

    Yields newline-terminated text lines and sends CRLF-terminated
    commands. A read that produces no terminated line within the read
    timeout raises ReadTimeoutError; there is no retry at this layer.
    """

    def __init__(
        self, serial_port: SerialLike, read_timeout: float = protocol.READ_TIMEOUT
    ) -> None:
        """Initialize transport with a serial port instance.

        Args:
            serial_port: Object implementing SerialLike protocol
                        (e.g., serial.Serial or FakeSerial for testing)
            read_timeout: Timeout the port was configured with, in seconds.
                        Used for error reporting.
        """
        self._port = serial_port
        self._read_timeout = read_timeout

    @classmethod
    def open(
        cls,
        port: str,
        baud: int = protocol.BAUD_RATE,
        timeout_s: float = protocol.READ_TIMEOUT,
    ) -> "Transport":
        """Open a real serial port (requires pyserial).

        Args:
            port: Serial port device name (e.g., "/dev/ttyACM0")
            baud: Baud rate. Default 115200.
            timeout_s: Read timeout in seconds. Default 10s; the sensor
                      reports every few seconds.

        Returns:
            Transport instance wrapping opened serial port

        Raises:
            ChannelOpenError: If port cannot be opened
        """
        import serial

        try:
            ser = serial.Serial(
                port=port,
                baudrate=baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout_s,
                write_timeout=timeout_s,
                rtscts=False,
                dsrdtr=False,
                xonxoff=False,
            )
        except (serial.SerialException, ValueError, OSError) as e:
            raise ChannelOpenError(f"Failed to open {port} at {baud} baud: {e}") from e

        logger.info(f"Opened serial port {port} at {baud} baud, timeout={timeout_s}s")
        return cls(ser, read_timeout=timeout_s)

    def close(self) -> None:
        """Close the serial port. Safe to call repeatedly or after a failure."""
        try:
            if self._port.is_open:
                self._port.close()
                logger.info("Closed serial port")
        except Exception as e:
            logger.warning(f"Error while closing serial port: {e}")

    @property
    def is_open(self) -> bool:
        """Check if port is currently open."""
        return self._port.is_open

    @property
    def read_timeout(self) -> float:
        return self._read_timeout

    def write_cmd(self, text: str) -> None:
        """Write a text command with CRLF terminator.

        Args:
            text: Command string (e.g., "STP", "ID?", "STA")

        Raises:
            SerialIOError: If the port is closed or the write fails
        """
        if not self._port.is_open:
            raise SerialIOError("Serial port is not open")

        data = text.encode("ascii") + protocol.INPUT_TERMINATOR
        try:
            sent = self._port.write(data)
            self._port.flush()
            logger.debug(f"Sent {sent} bytes: {data!r}")
        except Exception as e:
            raise SerialIOError(f"Failed to write to port: {e}") from e

    def readline(self) -> Optional[str]:
        """Read one line from the device.

        Returns:
            Line as string with CR/LF stripped, or None once the port has
            been closed (end of stream)

        Raises:
            ReadTimeoutError: If no terminated line arrived within the timeout
            SerialIOError: If the read fails
        """
        if not self._port.is_open:
            return None

        try:
            line_bytes = self._port.readline()
        except Exception as e:
            if not self._port.is_open:
                return None
            raise SerialIOError(f"Failed to read line: {e}") from e

        if not line_bytes.endswith(b"\n"):
            if not self._port.is_open:
                return None
            if line_bytes:
                logger.debug(f"Discarding unterminated fragment: {line_bytes!r}")
            raise ReadTimeoutError(
                f"No line received within {self._read_timeout}s"
            )

        line = line_bytes.decode("ascii", errors="replace").rstrip("\r\n")
        logger.debug(f"Received line: {line!r}")
        return line
