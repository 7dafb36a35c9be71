"""
Session driver: wires the reducer to a channel.

The driver owns the current SessionState. Channel events and presentation
intents both go through dispatch(), one at a time, so every state change is a
single reduce() step. Outbound effects are handed to the channel in the order
the reducer produced them; Log diagnostics are written to the client log.
"""

import asyncio
from collections.abc import Callable
from typing import Any, Protocol

from ..logging_config import get_logger
from ..protocol.messages import LogMessage, ProtocolMessage
from ..realtime.channel import ChannelEvent, InboundMessage
from .reducer import reduce
from .state import SessionState

logger = get_logger(__name__)

StateCallback = Callable[[SessionState], None]


class OutboundChannel(Protocol):
    """What the driver needs from a channel."""

    async def send(self, message: ProtocolMessage) -> None: ...

    def events(self) -> Any: ...


class SessionDriver:
    """Drive a SessionState from channel events and user intents."""

    def __init__(self, channel: OutboundChannel, state: SessionState | None = None):
        self.channel = channel
        self.state = state or SessionState()
        self._subscribers: list[StateCallback] = []
        self._lock = asyncio.Lock()

    def subscribe(self, callback: StateCallback) -> None:
        """Register a callback invoked with every new state."""
        self._subscribers.append(callback)

    async def dispatch(self, event: Any) -> SessionState:
        """
        Apply one event and perform its effects.

        Args:
            event: User intent, ChannelStatus, InboundMessage or server message

        Returns:
            The state after the event
        """
        if isinstance(event, InboundMessage):
            event = event.message

        async with self._lock:
            transition = reduce(self.state, event)
            changed = transition.state is not self.state
            self.state = transition.state

            for diagnostic in transition.diagnostics:
                _log_diagnostic(diagnostic)
            for message in transition.outbound:
                await self.channel.send(message)

        if changed:
            for callback in list(self._subscribers):
                try:
                    callback(self.state)
                except Exception as e:  # pylint: disable=broad-exception-caught
                    logger.error("State subscriber failed", error=str(e), exc_info=True)
        return self.state

    async def run(self) -> None:
        """Consume channel events until the channel is closed."""
        event: ChannelEvent
        async for event in self.channel.events():
            await self.dispatch(event)
        logger.info("Session driver stopped", rows=len(self.state.rows))


def _log_diagnostic(diagnostic: LogMessage) -> None:
    level = diagnostic.level.lower()
    if level == "error":
        logger.error(diagnostic.message)
    elif level in ("warn", "warning"):
        logger.warning(diagnostic.message)
    else:
        logger.info(diagnostic.message, diagnostic_level=diagnostic.level)
