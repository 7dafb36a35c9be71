"""
Session state and the events that drive it.

Everything here is immutable; the reducer returns new instances instead of
mutating. User intents are plain frozen dataclasses so a recorded event log
can be replayed deterministically.
"""

from dataclasses import dataclass

from ..protocol.messages import ChatRow, LogMessage, ProtocolMessage


@dataclass(frozen=True)
class EditTarget:
    """
    The single file open in the editor.

    ``saved_content`` is what the server last pushed or what was last saved;
    ``content`` is the in-progress edit.
    """

    name: str
    content: str
    saved_content: str

    @property
    def dirty(self) -> bool:
        return self.content != self.saved_content


@dataclass(frozen=True)
class SessionState:
    rows: tuple[ChatRow, ...] = ()
    input_text: str = ""
    last_command: str = ""
    edit_target: EditTarget | None = None
    channel_available: bool = False
    # Unsaved edits lost to a server EditFile push, kept so the UI can offer them back
    discarded_edit: EditTarget | None = None


# User intents


@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class SubmitCommand:
    """Submit the current input line, or ``text`` when given."""

    text: str | None = None


@dataclass(frozen=True)
class RecallLastCommand:
    pass


@dataclass(frozen=True)
class RequestReload:
    pass


@dataclass(frozen=True)
class EditContentChanged:
    content: str


@dataclass(frozen=True)
class SaveFile:
    """Save the open file; ``content`` replaces the in-progress edit first when given."""

    content: str | None = None


@dataclass(frozen=True)
class CloseEditor:
    pass


UserIntent = (
    InputChanged | SubmitCommand | RecallLastCommand | RequestReload | EditContentChanged | SaveFile | CloseEditor
)


@dataclass(frozen=True)
class Transition:
    """Result of one reducer step: the next state plus effects for the caller to perform."""

    state: SessionState
    outbound: tuple[ProtocolMessage, ...] = ()
    diagnostics: tuple[LogMessage, ...] = ()
