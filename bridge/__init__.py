"""Process wiring for the UD-CO2S bridge: configuration, server and supervisor."""

from bridge.config import BridgeConfig
from bridge.runner import BridgeRunner

__all__ = ["BridgeConfig", "BridgeRunner"]
