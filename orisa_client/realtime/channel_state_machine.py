"""
Connection state machine for the resilient channel.

One machine lives for the whole login session; the transport handles it
describes come and go across reconnect cycles.
"""

from datetime import UTC, datetime
from typing import Any

from statemachine import State, StateMachine

from ..logging_config import get_logger

logger = get_logger(__name__)


class ChannelStateMachine(StateMachine):
    """
    State machine for the channel's connection lifecycle.

    States:
    - idle: Created, no attempt made yet
    - connecting: Opening handshake in flight
    - open: Transport usable, frames flow both ways
    - closed: Transport gone; waiting out the backoff delay
    - stopped: Session ended, no further attempts

    Transitions:
    - idle/closed → connecting: connect
    - connecting → open: opened
    - connecting → closed: connection_failed (refused, reset, timeout)
    - open → closed: connection_lost (close frame or transport error)
    - any → stopped: stop
    """

    idle = State("Idle", initial=True)
    connecting = State("Connecting")
    open = State("Open")
    closed = State("Closed")
    stopped = State("Stopped", final=True)

    connect = idle.to(connecting) | closed.to(connecting)
    opened = connecting.to(open)
    connection_failed = connecting.to(closed)
    connection_lost = open.to(closed)
    stop = idle.to(stopped) | connecting.to(stopped) | open.to(stopped) | closed.to(stopped)

    def __init__(self, channel_id: str):
        """
        Initialize the channel state machine.

        Args:
            channel_id: Identifier used in every log line, usually the username
        """
        # on_enter_state fires for the initial state during super().__init__()
        self.channel_id = channel_id
        self.failed_attempts = 0
        self.total_connections = 0
        self.total_disconnections = 0
        self.last_connected_time: datetime | None = None
        self.last_error: str | None = None

        super().__init__()

    def on_enter_state(self, state: State, event: Any = None, **kwargs) -> None:
        logger.debug(
            "Channel state transition",
            channel_id=self.channel_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )

    def on_opened(self) -> None:
        self.last_connected_time = datetime.now(UTC)
        self.total_connections += 1
        self.failed_attempts = 0
        self.last_error = None
        logger.info(
            "Channel open",
            channel_id=self.channel_id,
            total_connections=self.total_connections,
        )

    def on_connection_failed(self, error: Exception | None = None) -> None:
        self.failed_attempts += 1
        self.last_error = str(error) if error else None
        logger.warning(
            "Channel connection attempt failed",
            channel_id=self.channel_id,
            failed_attempts=self.failed_attempts,
            error=self.last_error or "unknown",
        )

    def on_connection_lost(self, error: Exception | None = None) -> None:
        self.total_disconnections += 1
        self.last_error = str(error) if error else None
        logger.info(
            "Channel closed",
            channel_id=self.channel_id,
            total_disconnections=self.total_disconnections,
            error=self.last_error,
        )

    def on_stop(self) -> None:
        logger.info("Channel stopped", channel_id=self.channel_id)

    def is_waiting(self) -> bool:
        """True during the post-close backoff wait."""
        return self.current_state == self.closed

    def is_usable(self) -> bool:
        """True when frames can be written to the transport."""
        return self.current_state == self.open

    def get_stats(self) -> dict[str, Any]:
        """
        Get connection statistics.

        Returns:
            Dictionary with connection metrics
        """
        return {
            "channel_id": self.channel_id,
            "current_state": self.current_state.id,
            "failed_attempts": self.failed_attempts,
            "total_connections": self.total_connections,
            "total_disconnections": self.total_disconnections,
            "last_connected_time": self.last_connected_time.isoformat() if self.last_connected_time else None,
            "last_error": self.last_error,
        }
