"""FastAPI interface exposing the latest UD-CO2S reading.

Single-process, single-sensor service with thread-safe access to:
- ReadingStore (latest compensated reading, written by the reader thread)
- ReaderLoop (session state and device identification, read-only)

Error mapping:
- No reading captured yet → 503
- Other exceptions → 500
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException

from api.schemas import HealthResponse, ReadingResponse, reading_to_response
from co2_sensor_lib import __version__
from co2_sensor_lib.reader import ReaderLoop
from co2_sensor_lib.reading_store import ReadingStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "UD-CO2S Bridge"

# =============================================================================
# Global Singletons
# =============================================================================

_store: Optional[ReadingStore] = None
_reader: Optional[ReaderLoop] = None


def attach(store: ReadingStore, reader: Optional[ReaderLoop] = None) -> None:
    """Wire the shared store (and optionally the reader) into the app."""
    global _store, _reader
    _store = store
    _reader = reader


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="UD-CO2S Bridge",
    description="Latest CO2, humidity and temperature from a serial UD-CO2S sensor",
    version=__version__,
)


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/data", response_model=ReadingResponse)
async def get_data():
    """Get the most recent compensated reading.

    Returns 503 until the first frame has been decoded; a placeholder
    reading is never returned.
    """
    reading = _store.get() if _store is not None else None
    if reading is None:
        raise HTTPException(status_code=503, detail="no data")

    return reading_to_response(reading)


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    has_data = _store is not None and _store.get() is not None
    return HealthResponse(
        service=SERVICE_NAME,
        version=__version__,
        status="online",
        has_data=has_data,
        session=_reader.state.value if _reader is not None else None,
        device_id=_reader.device_id if _reader is not None else None,
    )


# =============================================================================
# Startup/Shutdown Events
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Log startup and the route table."""
    logger.info(f"{SERVICE_NAME} API started (version {__version__})")
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            methods = ",".join(sorted(route.methods))
            logger.debug(f"{methods:10} {route.path}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"{SERVICE_NAME} API stopped")
