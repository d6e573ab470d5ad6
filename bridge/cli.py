"""Command-line entry point for the UD-CO2S bridge."""

import argparse
import logging
import signal
from typing import List, Optional

from bridge.config import BridgeConfig, setup_logging
from bridge.runner import BridgeRunner
from co2_sensor_lib.errors import ConfigurationError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ud-co2s-bridge",
        description="Serve the latest UD-CO2S reading over HTTP",
    )
    parser.add_argument(
        "-d",
        "--device",
        help="Serial device of the sensor (default: $SERIAL_PORT)",
    )
    parser.add_argument(
        "--host",
        help="Host to bind to (default: $API_HOST)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        help="Port to listen on (default: $API_PORT)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    return parser


def load_config(argv: Optional[List[str]] = None) -> BridgeConfig:
    """Resolve configuration from the environment and command line.

    Raises:
        ConfigurationError: If required parameters are missing or invalid
    """
    args = build_parser().parse_args(argv)
    config = BridgeConfig.from_env().with_overrides(
        device=args.device,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
    )
    return config.validate()


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = load_config(argv)
    except ConfigurationError as e:
        setup_logging()
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(config.log_level)
    runner = BridgeRunner(config)

    def handle_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}")
        runner.cancel()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        runner.run()
    except Exception as e:
        logger.error(f"Fatal: {e}")
        return 1

    return 0
