"""
Resilient, auto-reconnecting websocket channel to the world server.

The channel owns exactly one transport at a time. A single supervisor task
drives the ChannelStateMachine: connect, serve frames until the transport
goes away, wait out the backoff delay, connect again. Nothing here is fatal:
connection errors are logged and retried, malformed frames are dropped, and
sends made while disconnected are buffered and flushed (after the Login
handshake) on the next successful open.

Every connection attempt bumps a generation counter. Inbound messages are
stamped with the generation they arrived on, and anything stamped with a
superseded generation is discarded before it reaches a consumer.
"""

import asyncio
import contextlib
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config.models import ChannelConfig
from ..exceptions import ConfigurationError, MessageDecodeError
from ..logging_config import get_logger
from ..protocol.messages import (
    LoginMessage,
    ProtocolMessage,
    ServerMessage,
    decode_server_message,
    encode_message,
)
from .backoff import ReconnectBackoff
from .channel_state_machine import ChannelStateMachine

logger = get_logger(__name__)

# Failures that end one connection attempt but never the channel
CONNECT_ERRORS = (OSError, TimeoutError, WebSocketException)

Connector = Callable[..., Awaitable[Any]]
MessageCallback = Callable[[ServerMessage], None]


@dataclass(frozen=True)
class InboundMessage:
    """A decoded server message tagged with the connection generation it arrived on."""

    message: ServerMessage
    generation: int


@dataclass(frozen=True)
class ChannelStatus:
    """Availability change; gates user input in presentation layers."""

    available: bool
    generation: int = 0


ChannelEvent = InboundMessage | ChannelStatus

_EVENTS_CLOSED = object()


class ResilientChannel:
    """
    Persistent bidirectional channel with backoff reconnection and outbound buffering.

    Usage:
        channel = ResilientChannel(config, "mrmudkips")
        channel.start()
        await channel.send(CommandMessage(text="look"))
        async for event in channel.events():
            ...
        await channel.close()
    """

    def __init__(self, config: ChannelConfig, username: str, connector: Connector | None = None):
        """
        Initialize the channel without connecting.

        Args:
            config: Channel configuration (URL, backoff bounds, buffer bound)
            username: Identity replayed in the Login handshake on every connection
            connector: Coroutine factory opening a transport; defaults to websockets.connect
        """
        self.config = config
        self.url = config.url
        self.username = username
        self._connector = connector or websockets.connect

        self.state = ChannelStateMachine(username)
        self.backoff = ReconnectBackoff(config.min_delay, config.max_delay, config.backoff_multiplier)

        self._buffer: deque[ProtocolMessage] = deque()
        self._transport: Any = None
        self._generation = 0
        self._send_lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._woken_this_wait = False
        self._events: asyncio.Queue = asyncio.Queue()
        self._events_consumer = False
        self._callbacks: list[MessageCallback] = []
        self._supervisor: asyncio.Task | None = None
        self.dropped_messages = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_available(self) -> bool:
        return self._transport is not None and self.state.is_usable()

    @property
    def buffered(self) -> tuple[ProtocolMessage, ...]:
        return tuple(self._buffer)

    def start(self) -> None:
        """
        Begin connecting in the background.

        Must be called from inside a running event loop; returns immediately.
        """
        if self._supervisor is not None:
            return
        loop = asyncio.get_running_loop()
        self._supervisor = loop.create_task(self._run(), name=f"orisa-channel-{self.username}")
        logger.info("Channel started", url=self.url, username=self.username)

    def on_message(self, callback: MessageCallback) -> None:
        """Register a callback invoked with every current-generation inbound message."""
        self._callbacks.append(callback)

    def events(self) -> AsyncIterator[ChannelEvent]:
        """
        Yield inbound messages and status changes in arrival order.

        Single consumer. Ends after close(). Events are only queued once this
        has been called; callers that rely on on_message() alone queue nothing.
        """
        self._events_consumer = True
        return self._iter_events()

    async def _iter_events(self) -> AsyncIterator[ChannelEvent]:
        while True:
            event = await self._events.get()
            if event is _EVENTS_CLOSED:
                return
            if isinstance(event, InboundMessage) and event.generation != self._generation:
                logger.debug(
                    "Discarding message from superseded connection",
                    message_generation=event.generation,
                    current_generation=self._generation,
                )
                continue
            yield event

    async def send(self, message: ProtocolMessage) -> None:
        """
        Transmit a message, or buffer it until the next successful open.

        Never raises for transport problems.

        Args:
            message: Outbound protocol message
        """
        async with self._send_lock:
            transport = self._transport
            if transport is not None and self.state.is_usable():
                try:
                    await transport.send(encode_message(message))
                    logger.debug("Sent message", message_type=message.type, generation=self._generation)
                    return
                except (ConnectionClosed, OSError) as e:
                    logger.warning(
                        "Send failed on closing transport; buffering",
                        message_type=message.type,
                        error=str(e),
                    )
            self._buffer_message(message)
        self._reconnect_now_if_waiting()

    async def close(self) -> None:
        """Stop reconnecting, close the live transport and end events()."""
        if self.state.current_state == self.state.stopped:
            return
        self.state.stop()
        # Retire the live generation so nothing already queued is delivered.
        self._generation += 1
        transport = self._transport

        if self._supervisor is not None:
            self._supervisor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._supervisor
            self._supervisor = None

        self._transport = None
        if transport is not None:
            with contextlib.suppress(*CONNECT_ERRORS):
                await transport.close()

        self._events.put_nowait(_EVENTS_CLOSED)
        logger.info("Channel closed by owner", username=self.username, buffered=len(self._buffer))

    def get_stats(self) -> dict[str, Any]:
        """Return channel metrics for diagnostics."""
        stats = self.state.get_stats()
        stats.update(
            {
                "url": self.url,
                "generation": self._generation,
                "buffered_messages": len(self._buffer),
                "dropped_messages": self.dropped_messages,
                "current_backoff": self.backoff.current,
                "backoff_history": list(self.backoff.history),
            }
        )
        return stats

    async def _run(self) -> None:
        """Supervisor loop: one connection attempt in flight at a time."""
        while self.state.current_state != self.state.stopped:
            self._generation += 1
            generation = self._generation
            self.state.connect()
            logger.debug("Connecting", url=self.url, generation=generation)

            try:
                await self._attempt(generation)
            except Exception as e:  # pylint: disable=broad-exception-caught
                # Any failure ends the attempt, never the supervisor.
                logger.error(
                    "Connection attempt failed unexpectedly",
                    generation=generation,
                    error=str(e),
                    exc_info=True,
                )
                if self.state.current_state == self.state.connecting:
                    self.state.connection_failed(error=e)

            if self.state.current_state == self.state.stopped:
                break
            await self._wait_before_reconnect()

    async def _attempt(self, generation: int) -> None:
        try:
            transport = await self._connector(self.url, open_timeout=self.config.open_timeout)
        except CONNECT_ERRORS as e:
            self.state.connection_failed(error=e)
            return
        await self._serve(transport, generation)

    async def _serve(self, transport: Any, generation: int) -> None:
        """Run the handshake, then pump frames until the transport goes away."""
        error: Exception | None = None
        try:
            await self._handle_open(transport, generation)
            async for raw in transport:
                if generation != self._generation:
                    logger.debug("Transport superseded; ignoring its frames", generation=generation)
                    break
                self._deliver(raw, generation)
        except (ConnectionClosed, OSError) as e:
            error = e
        except Exception:
            with contextlib.suppress(*CONNECT_ERRORS):
                await transport.close()
            raise
        finally:
            if self._transport is transport:
                self._transport = None
            if self.state.current_state == self.state.open:
                self.state.connection_lost(error=error)
            elif self.state.current_state == self.state.connecting:
                self.state.connection_failed(error=error)
            self._publish(ChannelStatus(available=False, generation=generation))

    async def _handle_open(self, transport: Any, generation: int) -> None:
        """Entry actions for Open: reset backoff, Login first, then flush the buffer FIFO."""
        async with self._send_lock:
            self._transport = transport
            self.state.opened()
            self.backoff.reset()

            await transport.send(encode_message(LoginMessage(username=self.username)))
            flushed = 0
            while self._buffer:
                await transport.send(encode_message(self._buffer[0]))
                self._buffer.popleft()
                flushed += 1

        logger.info("Handshake complete", username=self.username, generation=generation, flushed=flushed)
        self._publish(ChannelStatus(available=True, generation=generation))

    def _deliver(self, raw: str | bytes, generation: int) -> None:
        try:
            message = decode_server_message(raw)
        except MessageDecodeError as e:
            logger.warning(
                "Dropped malformed inbound frame",
                reason=e.reason,
                raw_preview=e.raw_preview,
                generation=generation,
            )
            return

        self._publish(InboundMessage(message=message, generation=generation))
        for callback in list(self._callbacks):
            try:
                callback(message)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Message callback failed", message_type=message.type, error=str(e), exc_info=True)

    def _publish(self, event: ChannelEvent) -> None:
        if self._events_consumer:
            self._events.put_nowait(event)

    def _buffer_message(self, message: ProtocolMessage) -> None:
        limit = self.config.max_buffered_messages
        if limit and len(self._buffer) >= limit:
            evicted = self._buffer.popleft()
            self.dropped_messages += 1
            logger.warning(
                "Outbound buffer full; dropping oldest message",
                dropped_type=evicted.type,
                limit=limit,
                dropped_total=self.dropped_messages,
            )
        self._buffer.append(message)
        logger.debug("Channel not open; buffered message", message_type=message.type, buffered=len(self._buffer))

    def _reconnect_now_if_waiting(self) -> None:
        """Cut the backoff wait short, at most once per waiting period."""
        if self.state.is_waiting() and not self._woken_this_wait:
            self._woken_this_wait = True
            self._wake.set()
            logger.info("Outbound message while waiting; reconnecting now", username=self.username)

    async def _wait_before_reconnect(self) -> None:
        delay = self.backoff.next_delay()
        self._woken_this_wait = False
        self._wake.clear()
        logger.info("Reconnecting after delay", delay=delay, username=self.username)
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except TimeoutError:
            pass


def open_channel(
    url: str,
    username: str,
    config: ChannelConfig | None = None,
    connector: Connector | None = None,
) -> ResilientChannel:
    """
    Build and start a channel for one login session.

    Args:
        url: Websocket URL of the world server
        username: Identity sent in the Login handshake
        config: Base configuration; its url is replaced by ``url``
        connector: Optional transport factory (tests pass an in-memory one)

    Returns:
        A started ResilientChannel

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    base = config or ChannelConfig()
    try:
        channel_config = ChannelConfig(**{**base.model_dump(), "url": url})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid channel configuration: {e.error_count()} error(s)", setting="url") from e

    channel = ResilientChannel(channel_config, username, connector=connector)
    channel.start()
    return channel
