"""Resilient channel: transport lifecycle, reconnect backoff and outbound buffering."""

from .backoff import ReconnectBackoff
from .channel import ChannelEvent, ChannelStatus, InboundMessage, ResilientChannel, open_channel
from .channel_state_machine import ChannelStateMachine

__all__ = [
    "ChannelEvent",
    "ChannelStateMachine",
    "ChannelStatus",
    "InboundMessage",
    "ReconnectBackoff",
    "ResilientChannel",
    "open_channel",
]
