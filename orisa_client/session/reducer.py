"""
Session reducer: (state, event) -> Transition.

Events are either decoded server messages, channel status changes, or user
intents. The reducer performs no I/O. Messages to send and diagnostics to log
come back inside the Transition and the caller (SessionDriver) performs them.
"""

from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from ..protocol.messages import (
    BacklogMessage,
    CommandMessage,
    EditFileMessage,
    LogMessage,
    ReloadCodeMessage,
    SaveFileMessage,
    TellMessage,
)
from ..realtime.channel import ChannelStatus
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
)


def reduce(state: SessionState, event: Any) -> Transition:
    """
    Fold one event into the session state.

    Args:
        state: Current session state
        event: Server message, ChannelStatus, or user intent

    Returns:
        Transition with the next state and any outbound messages/diagnostics
    """
    match event:
        case TellMessage(content=row):
            return Transition(replace(state, rows=state.rows + (row,)))

        case BacklogMessage(history=history):
            return Transition(replace(state, rows=tuple(history)))

        case LogMessage():
            return Transition(state, diagnostics=(event,))

        case EditFileMessage(name=name, content=content):
            return _open_editor(state, name, content)

        case ChannelStatus(available=available):
            return Transition(replace(state, channel_available=available))

        case InputChanged(text=text):
            return Transition(replace(state, input_text=text))

        case SubmitCommand(text=text):
            return _submit(state, state.input_text if text is None else text)

        case RecallLastCommand():
            return Transition(replace(state, input_text=state.last_command))

        case RequestReload():
            return Transition(state, outbound=(ReloadCodeMessage(),))

        case EditContentChanged(content=content):
            if state.edit_target is None:
                return Transition(state)
            return Transition(replace(state, edit_target=replace(state.edit_target, content=content)))

        case SaveFile(content=content):
            return _save(state, content)

        case CloseEditor():
            return Transition(replace(state, edit_target=None))

        case _:
            warning = LogMessage(message=f"Unhandled session event {type(event).__name__}", level="warning")
            return Transition(state, diagnostics=(warning,))


def _submit(state: SessionState, text: str) -> Transition:
    if not text.strip():
        return Transition(state)
    return Transition(
        replace(state, last_command=text, input_text=""),
        outbound=(CommandMessage(text=text),),
    )


def _open_editor(state: SessionState, name: str, content: str) -> Transition:
    previous = state.edit_target
    target = EditTarget(name=name, content=content, saved_content=content)
    if previous is None or not previous.dirty:
        return Transition(replace(state, edit_target=target))

    # At most one editor: the push wins, the unsaved edit is kept aside and reported.
    warning = LogMessage(
        message=f"Unsaved edits to {previous.name} were replaced by a server push of {name}",
        level="warning",
    )
    return Transition(replace(state, edit_target=target, discarded_edit=previous), diagnostics=(warning,))


def _save(state: SessionState, content: str | None) -> Transition:
    target = state.edit_target
    if target is None:
        return Transition(state)

    if content is not None:
        target = replace(target, content=content)
    saved = replace(target, saved_content=target.content)
    return Transition(
        replace(state, edit_target=saved),
        outbound=(SaveFileMessage(name=saved.name, content=saved.content),),
    )


def replay(events: Iterable[Any], state: SessionState | None = None) -> SessionState:
    """Fold a recorded event log into a final state, discarding effects."""
    current = state or SessionState()
    for event in events:
        current = reduce(current, event).state
    return current
