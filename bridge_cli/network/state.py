"""Supervisor state machine as a pure transition table."""

from __future__ import annotations

import enum
from typing import Dict, Tuple


class SupervisorState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    SHUTTING_DOWN = "shutting_down"


class SupervisorEvent(enum.Enum):
    START = "start"
    ACKNOWLEDGED = "acknowledged"
    DROPPED = "dropped"
    STOP = "stop"


class Effect(enum.Enum):
    OPEN_TRANSPORT = "open_transport"
    CLOSE_TRANSPORT = "close_transport"
    CANCEL_TIMER = "cancel_timer"
    RESET_ATTEMPTS = "reset_attempts"
    SCHEDULE_RETRY = "schedule_retry"


class InvalidTransition(ValueError):
    """Raised when an event is not accepted in the current state."""


Transition = Tuple[SupervisorState, Tuple[Effect, ...]]

_TABLE: Dict[Tuple[SupervisorState, SupervisorEvent], Transition] = {
    (SupervisorState.IDLE, SupervisorEvent.START): (
        SupervisorState.CONNECTING,
        (Effect.CANCEL_TIMER, Effect.OPEN_TRANSPORT),
    ),
    (SupervisorState.RECONNECTING, SupervisorEvent.START): (
        SupervisorState.CONNECTING,
        (Effect.CANCEL_TIMER, Effect.OPEN_TRANSPORT),
    ),
    # A start while a transport is live supersedes it (manual reconnect).
    (SupervisorState.CONNECTING, SupervisorEvent.START): (
        SupervisorState.CONNECTING,
        (Effect.CANCEL_TIMER, Effect.CLOSE_TRANSPORT, Effect.OPEN_TRANSPORT),
    ),
    (SupervisorState.OPEN, SupervisorEvent.START): (
        SupervisorState.CONNECTING,
        (Effect.CANCEL_TIMER, Effect.CLOSE_TRANSPORT, Effect.OPEN_TRANSPORT),
    ),
    (SupervisorState.CONNECTING, SupervisorEvent.ACKNOWLEDGED): (
        SupervisorState.OPEN,
        (Effect.RESET_ATTEMPTS,),
    ),
    (SupervisorState.CONNECTING, SupervisorEvent.DROPPED): (
        SupervisorState.RECONNECTING,
        (Effect.SCHEDULE_RETRY,),
    ),
    (SupervisorState.OPEN, SupervisorEvent.DROPPED): (
        SupervisorState.RECONNECTING,
        (Effect.SCHEDULE_RETRY,),
    ),
}


def transition(state: SupervisorState, event: SupervisorEvent) -> Transition:
    """Return ``(next_state, effects)`` for ``event`` in ``state``."""

    if state is SupervisorState.SHUTTING_DOWN:
        return state, ()
    if event is SupervisorEvent.STOP:
        return SupervisorState.SHUTTING_DOWN, (Effect.CANCEL_TIMER, Effect.CLOSE_TRANSPORT)
    try:
        return _TABLE[(state, event)]
    except KeyError:
        raise InvalidTransition(f"Invalid transition {state.value} on {event.value}") from None
