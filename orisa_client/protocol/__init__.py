"""Wire protocol: message catalog, codecs and row display helpers."""

from .messages import (
    BacklogMessage,
    ChatRow,
    ClientMessage,
    CommandMessage,
    EditFileMessage,
    HtmlRow,
    LoginMessage,
    LogMessage,
    ProtocolMessage,
    ReloadCodeMessage,
    SaveFileMessage,
    ServerMessage,
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
from .sanitize import row_display_text, sanitize_row_html

__all__ = [
    "BacklogMessage",
    "ChatRow",
    "ClientMessage",
    "CommandMessage",
    "EditFileMessage",
    "HtmlRow",
    "LoginMessage",
    "LogMessage",
    "ProtocolMessage",
    "ReloadCodeMessage",
    "SaveFileMessage",
    "ServerMessage",
    "TellMessage",
    "TextRow",
    "decode_client_message",
    "decode_server_message",
    "encode_message",
    "is_backlog_message",
    "is_edit_file_message",
    "is_log_message",
    "is_tell_message",
    "message_type",
    "row_display_text",
    "sanitize_row_html",
]
