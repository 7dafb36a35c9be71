"""
Tagged message catalog for the Orisa client/server socket protocol.

Each frame is a single JSON object whose ``type`` field names the variant.
Two disjoint families exist:

- client -> server: Login, Command, ReloadCode, SaveFile
- server -> client: Tell, Backlog, Log, EditFile

Models are frozen so a decoded message can be shared between the channel,
the reducer and any subscriber without defensive copies.
"""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..exceptions import MessageDecodeError


class ChatRowBase(BaseModel):
    """Common shape of a chat history entry; ``id`` is only a stable list key."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str


class TextRow(ChatRowBase):
    """Plain text line."""

    text: str


class HtmlRow(ChatRowBase):
    """Pre-rendered markup; must pass through sanitize_row_html() before display."""

    html: str


ChatRow = TextRow | HtmlRow


class ProtocolMessage(BaseModel):
    """Base for every wire message."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# Client -> server


class LoginMessage(ProtocolMessage):
    """Handshake frame; always the first frame on every connection."""

    type: Literal["Login"] = "Login"
    username: str


class CommandMessage(ProtocolMessage):
    type: Literal["Command"] = "Command"
    text: str
    extra: dict[str, Any] | None = None


class ReloadCodeMessage(ProtocolMessage):
    type: Literal["ReloadCode"] = "ReloadCode"


class SaveFileMessage(ProtocolMessage):
    type: Literal["SaveFile"] = "SaveFile"
    name: str
    content: str


# Server -> client


class TellMessage(ProtocolMessage):
    """A single chat row to append."""

    type: Literal["Tell"] = "Tell"
    content: ChatRow


class BacklogMessage(ProtocolMessage):
    """Full replacement snapshot of chat history, most recent last."""

    type: Literal["Backlog"] = "Backlog"
    history: tuple[ChatRow, ...]


class LogMessage(ProtocolMessage):
    """Diagnostic line for the client log, never shown as chat."""

    type: Literal["Log"] = "Log"
    message: str
    level: str = "info"


class EditFileMessage(ProtocolMessage):
    """Ask the client to open a file in its editor."""

    type: Literal["EditFile"] = "EditFile"
    name: str
    content: str


ClientMessage = Annotated[
    LoginMessage | CommandMessage | ReloadCodeMessage | SaveFileMessage,
    Field(discriminator="type"),
]
ServerMessage = Annotated[
    TellMessage | BacklogMessage | LogMessage | EditFileMessage,
    Field(discriminator="type"),
]

CLIENT_MESSAGE_TYPES = frozenset({"Login", "Command", "ReloadCode", "SaveFile"})
SERVER_MESSAGE_TYPES = frozenset({"Tell", "Backlog", "Log", "EditFile"})

_client_adapter: TypeAdapter = TypeAdapter(ClientMessage)
_server_adapter: TypeAdapter = TypeAdapter(ServerMessage)


def message_type(message: Any) -> str | None:
    """
    Return the discriminant of a message model or raw decoded dict.

    Anything without a string ``type`` yields None.
    """
    if isinstance(message, dict):
        value = message.get("type")
    else:
        value = getattr(message, "type", None)
    return value if isinstance(value, str) else None


def is_tell_message(message: Any) -> bool:
    return message_type(message) == "Tell"


def is_backlog_message(message: Any) -> bool:
    return message_type(message) == "Backlog"


def is_log_message(message: Any) -> bool:
    return message_type(message) == "Log"


def is_edit_file_message(message: Any) -> bool:
    return message_type(message) == "EditFile"


def encode_message(message: ProtocolMessage) -> str:
    """
    Serialize a message to a single newline-free JSON text frame.

    Unset optional fields (e.g. Command.extra) are left off the wire.
    """
    payload = message.model_dump(mode="json", exclude_none=True)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _load_frame(raw: str | bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise MessageDecodeError(raw, f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise MessageDecodeError(raw, "JSON nested too deeply") from e
    if not isinstance(payload, dict):
        raise MessageDecodeError(raw, f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _validate(adapter: TypeAdapter, known: frozenset[str], raw: str | bytes) -> Any:
    payload = _load_frame(raw)
    kind = message_type(payload)
    if kind not in known:
        raise MessageDecodeError(raw, f"unknown message type {kind!r}")
    try:
        return adapter.validate_python(payload)
    except ValidationError as e:
        raise MessageDecodeError(raw, f"invalid {kind} payload: {e.error_count()} error(s)") from e


def decode_server_message(raw: str | bytes) -> TellMessage | BacklogMessage | LogMessage | EditFileMessage:
    """
    Decode one inbound frame.

    Args:
        raw: Text (or UTF-8 bytes) frame as received from the socket

    Returns:
        The matching server message model

    Raises:
        MessageDecodeError: If the frame is not JSON, not an object, carries an
            unknown discriminant, or does not match its variant's shape
    """
    return _validate(_server_adapter, SERVER_MESSAGE_TYPES, raw)


def decode_client_message(raw: str | bytes) -> LoginMessage | CommandMessage | ReloadCodeMessage | SaveFileMessage:
    """Decode one outbound frame; the inverse of encode_message() for client messages."""
    return _validate(_client_adapter, CLIENT_MESSAGE_TYPES, raw)
