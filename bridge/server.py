"""Query server: runs the FastAPI app under uvicorn in its own thread."""

import logging
import threading
from typing import Optional

import uvicorn

from co2_sensor_lib import protocol

logger = logging.getLogger(__name__)

# How often the watcher checks the cancellation signal
_CANCEL_POLL_INTERVAL = 0.1


class QueryServerError(Exception):
    """Raised when the HTTP server fails to start or crashes."""

    pass


class QueryServer:
    """uvicorn server that shuts down gracefully when a shared event is set.

    On cancellation uvicorn stops accepting connections and gives
    in-flight requests up to the grace period before closing them.
    """

    def __init__(
        self,
        app,
        host: str,
        port: int,
        cancel_event: Optional[threading.Event] = None,
        grace_period: float = protocol.SHUTDOWN_GRACE_PERIOD,
        log_level: str = "warning",
    ) -> None:
        self._cancel_event = cancel_event or threading.Event()
        self._host = host
        self._port = port
        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level,
            access_log=False,
            timeout_graceful_shutdown=grace_period,
        )
        self._server = uvicorn.Server(config)
        self._finished = threading.Event()

    @property
    def started(self) -> bool:
        """True once uvicorn is accepting connections."""
        return self._server.started

    def run(self) -> None:
        """Serve until the cancellation event is set (blocking).

        uvicorn only installs signal handlers on the main thread, so running
        here leaves SIGINT to the process supervisor.

        Raises:
            QueryServerError: If the server could not start or exited
                without being asked to
        """
        self._finished.clear()
        watcher = threading.Thread(
            target=self._watch_cancel, name="QueryServerShutdown", daemon=True
        )
        watcher.start()

        logger.info(f"Listening on {self._host}:{self._port}")
        try:
            self._server.run()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise QueryServerError(
                f"HTTP server failed to start on {self._host}:{self._port}"
            ) from e
        finally:
            self._finished.set()

        if not self._cancel_event.is_set():
            raise QueryServerError("HTTP server stopped unexpectedly")
        logger.info("HTTP server stopped.")

    def _watch_cancel(self) -> None:
        while not self._finished.is_set():
            if self._cancel_event.wait(timeout=_CANCEL_POLL_INTERVAL):
                logger.info("Shutting down HTTP server...")
                self._server.should_exit = True
                return
