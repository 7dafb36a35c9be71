"""
Tests for the message catalog: constructors, predicates and codecs.
"""

import json

import pytest
from pydantic import ValidationError

from orisa_client.exceptions import MessageDecodeError
from orisa_client.protocol.messages import (
    BacklogMessage,
    CommandMessage,
    EditFileMessage,
    HtmlRow,
    LoginMessage,
    LogMessage,
    ReloadCodeMessage,
    SaveFileMessage,
    TellMessage,
    TextRow,
    decode_client_message,
    decode_server_message,
    encode_message,
    is_backlog_message,
    is_edit_file_message,
    is_log_message,
    is_tell_message,
    message_type,
)

PREDICATES = [is_tell_message, is_backlog_message, is_log_message, is_edit_file_message]


class TestOutboundConstruction:
    """Outbound constructors always carry their discriminant."""

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            (LoginMessage(username="zed"), {"type": "Login", "username": "zed"}),
            (CommandMessage(text="look"), {"type": "Command", "text": "look"}),
            (ReloadCodeMessage(), {"type": "ReloadCode"}),
            (SaveFileMessage(name="main.lua", content="x=2"), {"type": "SaveFile", "name": "main.lua", "content": "x=2"}),
        ],
    )
    def test_encoded_frame(self, message, expected):
        assert json.loads(encode_message(message)) == expected

    def test_command_extra_is_sent_when_present(self):
        frame = encode_message(CommandMessage(text="look", extra={"target": "lamp"}))

        assert json.loads(frame) == {"type": "Command", "text": "look", "extra": {"target": "lamp"}}

    def test_frames_are_single_line(self):
        """Embedded newlines are escaped, never written raw."""
        frame = encode_message(SaveFileMessage(name="main.lua", content="x = 1\nreturn x\n"))

        assert "\n" not in frame
        assert decode_client_message(frame) == SaveFileMessage(name="main.lua", content="x = 1\nreturn x\n")

    def test_messages_are_frozen(self):
        message = CommandMessage(text="look")

        with pytest.raises(ValidationError):
            message.text = "north"


class TestPredicates:
    """Type-narrowing predicates match only their own discriminant."""

    def test_each_predicate_matches_its_variant(self):
        assert is_tell_message(TellMessage(content=TextRow(id="1", text="hi")))
        assert is_backlog_message(BacklogMessage(history=()))
        assert is_log_message(LogMessage(message="ok"))
        assert is_edit_file_message(EditFileMessage(name="a.lua", content=""))

    def test_predicates_accept_raw_dicts(self):
        assert is_tell_message({"type": "Tell"})
        assert not is_tell_message({"type": "tell"})

    def test_unknown_discriminant_matches_nothing(self):
        bogus = {"type": "Bogus", "content": "x"}

        assert not any(predicate(bogus) for predicate in PREDICATES)

    def test_missing_or_non_string_type(self):
        assert message_type({}) is None
        assert message_type({"type": 3}) is None
        assert message_type(object()) is None


class TestDecodeServerMessage:
    """Inbound frame decoding."""

    def test_tell_with_text_row(self):
        message = decode_server_message('{"type":"Tell","content":{"id":"1","text":"hi"}}')

        assert message == TellMessage(content=TextRow(id="1", text="hi"))

    def test_tell_with_html_row(self):
        message = decode_server_message('{"type":"Tell","content":{"id":"7","html":"<b>boo</b>"}}')

        assert isinstance(message.content, HtmlRow)
        assert message.content.html == "<b>boo</b>"

    def test_backlog_preserves_order(self):
        frame = json.dumps(
            {"type": "Backlog", "history": [{"id": "2", "text": "a"}, {"id": "3", "html": "<i>b</i>"}]}
        )

        message = decode_server_message(frame)

        assert [row.id for row in message.history] == ["2", "3"]

    def test_log_defaults_to_info(self):
        message = decode_server_message(b'{"type":"Log","message":"reloaded"}')

        assert message == LogMessage(message="reloaded", level="info")

    def test_edit_file(self):
        message = decode_server_message('{"type":"EditFile","name":"main.lua","content":"x=1"}')

        assert message == EditFileMessage(name="main.lua", content="x=1")

    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            "[1, 2, 3]",
            '{"type":"Bogus"}',
            '{"content":{"id":"1","text":"hi"}}',
            '{"type":"Tell"}',
            '{"type":"Tell","content":{"id":"1"}}',
            '{"type":"Tell","content":{"id":"1","text":"a","html":"b"}}',
            '{"type":"Login","username":"zed"}',
            pytest.param("[" * 100000 + "]" * 100000, id="deeply-nested"),
            pytest.param('{"type":"Tell","content":' + "[" * 100000 + "]" * 100000 + "}", id="deeply-nested-field"),
            pytest.param(b'{"type":"Log","message":"\xff\xfe"}', id="invalid-utf8"),
        ],
    )
    def test_rejected_frames(self, frame):
        with pytest.raises(MessageDecodeError):
            decode_server_message(frame)

    def test_error_carries_reason_and_preview(self):
        with pytest.raises(MessageDecodeError) as exc_info:
            decode_server_message('{"type":"Bogus"}')

        assert "Bogus" in exc_info.value.reason
        assert exc_info.value.raw_preview == '{"type":"Bogus"}'

    def test_nested_frame_preview_is_truncated(self):
        with pytest.raises(MessageDecodeError) as exc_info:
            decode_server_message("[" * 100000 + "]" * 100000)

        assert exc_info.value.reason == "JSON nested too deeply"
        assert len(exc_info.value.raw_preview) == 120


class TestDecodeClientMessage:
    def test_client_frames_decode(self):
        assert decode_client_message('{"type":"Login","username":"zed"}') == LoginMessage(username="zed")
        assert decode_client_message('{"type":"ReloadCode"}') == ReloadCodeMessage()

    def test_server_variants_are_not_client_messages(self):
        with pytest.raises(MessageDecodeError):
            decode_client_message('{"type":"Log","message":"x"}')
