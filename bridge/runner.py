"""Supervisor running the reader loop and the query server side by side.

Both units share one ReadingStore and one cancellation event. The first
fatal error from either unit cancels the other and becomes the outcome of
``run()``. Shutdown requested during the handshake is not an error.
"""

import logging
import threading
from typing import Callable, List, Optional

from api import main as api_main
from bridge.config import BridgeConfig
from bridge.server import QueryServer
from co2_sensor_lib.errors import ConfigurationError, HandshakeCancelled
from co2_sensor_lib.reader import ReaderLoop
from co2_sensor_lib.reading_store import ReadingStore
from co2_sensor_lib.transport import Transport

logger = logging.getLogger(__name__)

# Join timeout so the main thread keeps handling signals while waiting
_JOIN_POLL_INTERVAL = 0.5


class BridgeRunner:
    """Runs the reader loop and query server until both finish."""

    def __init__(
        self,
        config: BridgeConfig,
        store: Optional[ReadingStore] = None,
        open_transport: Optional[Callable[[], Transport]] = None,
        cancel_event: Optional[threading.Event] = None,
        server: Optional[QueryServer] = None,
    ) -> None:
        """Initialize runner.

        Args:
            config: Validated bridge configuration
            store: Shared reading store (a new one by default)
            open_transport: Transport factory (opens config.device by default)
            cancel_event: Shared shutdown signal (a new one by default)
            server: Query server (uvicorn on config.host:config.port by default)
        """
        self._config = config
        self.store = store or ReadingStore()
        self.cancel_event = cancel_event or threading.Event()

        self.reader = ReaderLoop(
            self.store,
            open_transport or self._open_transport,
            cancel_event=self.cancel_event,
            settle_delay=config.settle_delay_s,
        )
        api_main.attach(self.store, self.reader)

        if server is None:
            if config.host is None or config.port is None:
                raise ConfigurationError("listening host and port are required")
            server = QueryServer(
                api_main.app,
                config.host,
                config.port,
                cancel_event=self.cancel_event,
                grace_period=config.shutdown_grace_s,
            )
        self.server = server

        self._errors: List[BaseException] = []
        self._errors_lock = threading.Lock()

    def _open_transport(self) -> Transport:
        if self._config.device is None:
            raise ConfigurationError("device is required")
        logger.info(f"Opening serial port {self._config.device}")
        return Transport.open(
            self._config.device,
            baud=self._config.baud,
            timeout_s=self._config.read_timeout_s,
        )

    def cancel(self) -> None:
        """Request a cooperative shutdown of both units."""
        if not self.cancel_event.is_set():
            logger.info("Shutdown requested")
        self.cancel_event.set()

    @property
    def errors(self) -> List[BaseException]:
        """Fatal errors collected so far, in the order they occurred."""
        with self._errors_lock:
            return list(self._errors)

    def run(self) -> None:
        """Start both units and wait for them (blocking).

        Raises:
            The first fatal error raised by either unit
        """
        threads = [
            threading.Thread(
                target=self._run_unit, args=("reader", self.reader.run), name="ReaderLoop"
            ),
            threading.Thread(
                target=self._run_unit, args=("server", self.server.run), name="QueryServer"
            ),
        ]
        for thread in threads:
            thread.start()

        for thread in threads:
            while thread.is_alive():
                thread.join(timeout=_JOIN_POLL_INTERVAL)

        errors = self.errors
        if errors:
            raise errors[0]

    def _run_unit(self, name: str, target: Callable[[], None]) -> None:
        try:
            target()
        except HandshakeCancelled:
            logger.info(f"{name} cancelled before streaming started")
        except Exception as e:
            logger.error(f"{name} failed: {e}")
            with self._errors_lock:
                self._errors.append(e)
            self.cancel_event.set()
