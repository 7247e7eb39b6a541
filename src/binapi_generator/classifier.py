"""Infer the exchange role of a message from its leading fields."""

from __future__ import annotations

import enum
from collections.abc import Sequence

from binapi_generator.binapi_types import BinapiField
from binapi_generator.schema import Field

CLIENT_INDEX_FIELD = BinapiField.CLIENT_INDEX
CONTEXT_FIELD = BinapiField.CONTEXT

# Field 0 is always the message id; the role is decided by the two fields that follow it.
FIRST_INSPECTED = 1
LAST_INSPECTED = 2


class MessageRole(enum.Enum):
    """Role a message plays in a request/reply exchange."""

    REQUEST = "RequestMessage"
    REPLY = "ReplyMessage"
    EVENT = "EventMessage"
    OTHER = "OtherMessage"


class _State(enum.Enum):
    START = "start"
    EVENT_CANDIDATE = "event_candidate"
    REQUEST = "request"
    REPLY = "reply"
    EVENT = "event"
    OTHER = "other"


_TERMINAL = {
    _State.REQUEST: MessageRole.REQUEST,
    _State.REPLY: MessageRole.REPLY,
    _State.EVENT: MessageRole.EVENT,
    _State.OTHER: MessageRole.OTHER,
}


def _step(state: _State, position: int, name: str) -> _State:
    """Advance the classifier by one inspected field."""
    if state is _State.START and position == FIRST_INSPECTED:
        if name == CLIENT_INDEX_FIELD:
            return _State.EVENT_CANDIDATE
        if name == CONTEXT_FIELD:
            return _State.REPLY
        return _State.OTHER

    if state is _State.EVENT_CANDIDATE and position == LAST_INSPECTED:
        if name == CONTEXT_FIELD:
            return _State.REQUEST
        return _State.EVENT

    return state


def _finish(state: _State) -> MessageRole:
    """Resolve a state into a role once there are no more fields to inspect."""
    if state is _State.EVENT_CANDIDATE:
        return MessageRole.EVENT
    return _TERMINAL.get(state, MessageRole.OTHER)


def classify_names(names: Sequence[str]) -> MessageRole:
    """Classify a message by the names of its fields.

    `client_index` followed by `context` makes a request, `client_index` alone an event,
    `context` right after the message id a reply; anything else is other.

    Args:
        names (Sequence[str]): The field names in declaration order, starting with the message id.

    Returns:
        MessageRole: The role of the message.
    """
    state = _State.START
    for position in range(FIRST_INSPECTED, min(len(names), LAST_INSPECTED + 1)):
        state = _step(state, position, names[position])
        if state in _TERMINAL:
            break
    return _finish(state)


def classify_message(fields: Sequence[Field]) -> MessageRole:
    """Classify a message by its fields."""
    return classify_names([f.name for f in fields])
