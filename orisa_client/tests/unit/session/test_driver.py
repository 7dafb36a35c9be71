"""
Tests for the session driver.

The channel is replaced by a mock with an AsyncMock send() and a scripted
events() stream.
"""

# pylint: disable=redefined-outer-name

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from orisa_client.protocol.messages import (
    BacklogMessage,
    CommandMessage,
    EditFileMessage,
    LogMessage,
    SaveFileMessage,
    TellMessage,
    TextRow,
)
from orisa_client.realtime.channel import ChannelStatus, InboundMessage
from orisa_client.session.driver import SessionDriver
from orisa_client.session.state import InputChanged, SaveFile, SubmitCommand


def scripted_channel(*events):
    """Mock channel whose events() yields the given events then ends."""

    async def _events():
        for event in events:
            yield event

    channel = MagicMock()
    channel.send = AsyncMock()
    channel.events = _events
    return channel


@pytest.fixture
def channel():
    return scripted_channel()


class TestDispatch:
    """User intents flow through the reducer to the channel."""

    @pytest.mark.asyncio
    async def test_submit_sends_command(self, channel):
        driver = SessionDriver(channel)

        await driver.dispatch(InputChanged("look"))
        state = await driver.dispatch(SubmitCommand())

        channel.send.assert_awaited_once_with(CommandMessage(text="look"))
        assert state.last_command == "look"

    @pytest.mark.asyncio
    async def test_save_sends_save_file(self, channel):
        driver = SessionDriver(channel)
        await driver.dispatch(EditFileMessage(name="main.lua", content="x=1"))

        await driver.dispatch(SaveFile(content="x=2"))

        channel.send.assert_awaited_once_with(SaveFileMessage(name="main.lua", content="x=2"))
        assert driver.state.edit_target.content == "x=2"

    @pytest.mark.asyncio
    async def test_subscribers_see_changes_only(self, channel):
        driver = SessionDriver(channel)
        seen = []
        driver.subscribe(seen.append)

        await driver.dispatch(InputChanged("look"))
        await driver.dispatch(SaveFile())

        assert len(seen) == 1
        assert seen[0].input_text == "look"

    @pytest.mark.asyncio
    async def test_inbound_wrapper_is_unwrapped(self, channel):
        driver = SessionDriver(channel)
        row = TextRow(id="1", text="hi")

        state = await driver.dispatch(InboundMessage(message=TellMessage(content=row), generation=1))

        assert state.rows == (row,)


class TestRun:
    """Consuming the channel's event stream."""

    @pytest.mark.asyncio
    async def test_run_folds_events_in_order(self):
        channel = scripted_channel(
            ChannelStatus(available=True, generation=1),
            InboundMessage(message=TellMessage(content=TextRow(id="1", text="hi")), generation=1),
            InboundMessage(
                message=BacklogMessage(history=(TextRow(id="2", text="a"), TextRow(id="3", text="b"))),
                generation=1,
            ),
        )
        driver = SessionDriver(channel)

        await driver.run()

        assert [row.text for row in driver.state.rows] == ["a", "b"]
        assert driver.state.channel_available

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_stop_the_session(self):
        """A subscriber that raises is logged; later events are still folded in."""
        channel = scripted_channel(
            ChannelStatus(available=True, generation=1),
            InboundMessage(message=TellMessage(content=TextRow(id="1", text="hi")), generation=1),
        )
        driver = SessionDriver(channel)
        seen = []
        calls = {"count": 0}

        def flaky(state):
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("render bug")
            seen.append(state)

        driver.subscribe(flaky)

        with patch("orisa_client.session.driver.logger") as mock_logger:
            await driver.run()

        assert [row.text for row in driver.state.rows] == ["hi"]
        assert seen[-1].rows == driver.state.rows
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["error"] == "render bug"

    @pytest.mark.asyncio
    async def test_log_messages_go_to_logger_by_level(self):
        channel = scripted_channel(
            InboundMessage(message=LogMessage(message="boom", level="error"), generation=1),
            InboundMessage(message=LogMessage(message="compiled", level="info"), generation=1),
        )
        driver = SessionDriver(channel)

        with patch("orisa_client.session.driver.logger") as mock_logger:
            await driver.run()

        mock_logger.error.assert_called_once_with("boom")
        mock_logger.info.assert_any_call("compiled", diagnostic_level="info")
        assert driver.state.rows == ()
        channel.send.assert_not_awaited()
