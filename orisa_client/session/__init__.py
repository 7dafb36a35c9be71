"""Session state, reducer and the driver that connects them to a channel."""

from .driver import SessionDriver
from .reducer import reduce, replay
from .state import (
    CloseEditor,
    EditContentChanged,
    EditTarget,
    InputChanged,
    RecallLastCommand,
    RequestReload,
    SaveFile,
    SessionState,
    SubmitCommand,
    Transition,
    UserIntent,
)

__all__ = [
    "CloseEditor",
    "EditContentChanged",
    "EditTarget",
    "InputChanged",
    "RecallLastCommand",
    "RequestReload",
    "SaveFile",
    "SessionDriver",
    "SessionState",
    "SubmitCommand",
    "Transition",
    "UserIntent",
    "reduce",
    "replay",
]
