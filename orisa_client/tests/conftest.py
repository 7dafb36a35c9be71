"""
Shared fixtures for the Orisa client test suite.
"""

import pytest
import pytest_asyncio

from orisa_client.config.models import ChannelConfig
from orisa_client.realtime.channel import ResilientChannel
from orisa_client.tests.fakes import FakeServer


@pytest.fixture
def fast_config() -> ChannelConfig:
    """Channel configuration with millisecond backoff so reconnect tests run quickly."""
    return ChannelConfig(
        url="ws://world.test/api/socket",
        min_delay=0.01,
        max_delay=0.64,
        backoff_multiplier=2.0,
        open_timeout=1.0,
    )


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def make_channel(fast_config):
    """Build channels bound to a fake server; every channel is closed on teardown."""
    channels: list[ResilientChannel] = []

    def _make(server: FakeServer, config: ChannelConfig | None = None, username: str = "mrmudkips"):
        channel = ResilientChannel(config or fast_config, username, connector=server.connect)
        channels.append(channel)
        return channel

    yield _make

    for channel in channels:
        await channel.close()
