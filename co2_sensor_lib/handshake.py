"""Handshake sequencer that arms the sensor before streaming.

Each command of the init sequence goes through::

    IDLE -> SENDING(cmd) -> AWAITING_RESPONSE(cmd) -> SENDING(next) ... -> READY
                                               \\-> FAILED    (NG)
                                               \\-> CANCELLED (shutdown requested)

One transition method handles each non-terminal state, so a single step
can be driven and checked without a device.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional, Sequence

from co2_sensor_lib import protocol
from co2_sensor_lib.errors import HandshakeCancelled, HandshakeFailure, SerialIOError
from co2_sensor_lib.models import (
    INIT_SEQUENCE,
    Command,
    HandshakeResult,
    HandshakeState,
    ResponseKind,
)
from co2_sensor_lib.parsing import classify_response
from co2_sensor_lib.transport import Transport

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset(
    {HandshakeState.READY, HandshakeState.FAILED, HandshakeState.CANCELLED}
)


class HandshakeSequencer:
    """Drives the fixed STP / ID? / STA command sequence over a transport."""

    def __init__(
        self,
        transport: Transport,
        cancel_event: Optional[threading.Event] = None,
        commands: Sequence[Command] = INIT_SEQUENCE,
        settle_delay: float = protocol.COMMAND_SETTLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize sequencer.

        Args:
            transport: Open transport to the sensor
            cancel_event: Shutdown signal checked while awaiting responses
            commands: Commands to issue, in order
            settle_delay: Seconds to wait after each write before listening
            sleep: Sleep function (injectable for tests)
        """
        self._transport = transport
        self._cancel_event = cancel_event or threading.Event()
        self._commands = tuple(commands)
        self._settle_delay = settle_delay
        self._sleep = sleep

        self._state = HandshakeState.IDLE
        self._index = 0
        self._failed_command: Optional[Command] = None
        self._failed_line: Optional[str] = None
        self._responses: Dict[Command, str] = {}

        self._transitions = {
            HandshakeState.IDLE: self._on_idle,
            HandshakeState.SENDING: self._on_sending,
            HandshakeState.AWAITING_RESPONSE: self._on_awaiting_response,
        }

    @property
    def state(self) -> HandshakeState:
        """Current handshake state."""
        return self._state

    @property
    def current_command(self) -> Optional[Command]:
        """Command being sent or awaited (the failing one once FAILED)."""
        if self._index < len(self._commands):
            return self._commands[self._index]
        return None

    @property
    def responses(self) -> Dict[Command, str]:
        """Acknowledgement lines received so far, by command."""
        return dict(self._responses)

    def step(self) -> HandshakeState:
        """Perform a single state transition.

        Returns:
            The state after the transition

        Raises:
            ReadTimeoutError: If the device is silent while a response is awaited
            SerialIOError: On write failure or end of stream
        """
        if self._state in TERMINAL_STATES:
            return self._state
        self._state = self._transitions[self._state]()
        return self._state

    def run(self) -> HandshakeResult:
        """Run the sequence to a terminal state.

        Returns:
            HandshakeResult once every command has been acknowledged

        Raises:
            HandshakeFailure: If the device answered NG (carries the command)
            HandshakeCancelled: If shutdown was requested while waiting
            ReadTimeoutError: If the device went silent
            SerialIOError: On other I/O failures
        """
        logger.info("Preparing device...")
        while self.step() not in TERMINAL_STATES:
            pass

        if self._state == HandshakeState.FAILED:
            command = self._failed_command
            name = command.value if command is not None else ""
            raise HandshakeFailure(name, self._failed_line)
        if self._state == HandshakeState.CANCELLED:
            raise HandshakeCancelled("Shutdown requested during handshake")

        logger.info("Device ready")
        return HandshakeResult(device_id=self._responses.get(Command.IDENTIFY))

    # ========================================================================
    # Transitions
    # ========================================================================

    def _on_idle(self) -> HandshakeState:
        self._index = 0
        if not self._commands:
            return HandshakeState.READY
        return HandshakeState.SENDING

    def _on_sending(self) -> HandshakeState:
        command = self._commands[self._index]
        logger.info(f" {command.value}")
        self._transport.write_cmd(command.value)
        self._sleep(self._settle_delay)
        return HandshakeState.AWAITING_RESPONSE

    def _on_awaiting_response(self) -> HandshakeState:
        if self._cancel_event.is_set():
            logger.info("Handshake cancelled")
            return HandshakeState.CANCELLED

        command = self._commands[self._index]
        line = self._transport.readline()
        if line is None:
            raise SerialIOError(f"Stream ended while waiting for `{command.value}` response")

        response = classify_response(line)
        if response.kind == ResponseKind.SUCCESS:
            self._responses[command] = line
            self._index += 1
            if self._index >= len(self._commands):
                return HandshakeState.READY
            return HandshakeState.SENDING

        if response.kind == ResponseKind.FAILURE:
            logger.error(f"Command `{command.value}` rejected: {line!r}")
            self._failed_command = command
            self._failed_line = line
            return HandshakeState.FAILED

        logger.debug(f"Ignoring line while awaiting `{command.value}`: {line!r}")
        return HandshakeState.AWAITING_RESPONSE
