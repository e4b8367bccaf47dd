import dataclasses
from enum import Enum

from papelaria.models import SessionState, TimerHandle


class ContactState(str, Enum):
    IDLE = "idle"
    AWAITING_UPLOAD = "awaiting_upload"
    HANDOFF_ACTIVE = "handoff_active"


VALID_TRANSITIONS = {
    ContactState.IDLE: [ContactState.IDLE, ContactState.AWAITING_UPLOAD, ContactState.HANDOFF_ACTIVE],
    ContactState.AWAITING_UPLOAD: [ContactState.AWAITING_UPLOAD, ContactState.IDLE],
    ContactState.HANDOFF_ACTIVE: [ContactState.HANDOFF_ACTIVE, ContactState.IDLE],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: ContactState, to_state: ContactState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def state_of(session: SessionState) -> ContactState:
    if session.handoff_active:
        return ContactState.HANDOFF_ACTIVE
    if session.awaiting_upload is not None:
        return ContactState.AWAITING_UPLOAD
    return ContactState.IDLE


def can_transition(from_state: ContactState, to_state: ContactState) -> bool:
    """Check if transition is valid."""
    return to_state in VALID_TRANSITIONS.get(from_state, [])


def _check(session: SessionState, to_state: ContactState) -> None:
    from_state = state_of(session)
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)


def await_upload(session: SessionState, kind: str) -> SessionState:
    """Idle -> AwaitingUpload(kind); previous follow-ups are dropped."""
    _check(session, ContactState.AWAITING_UPLOAD)
    if state_of(session) is ContactState.AWAITING_UPLOAD:
        raise InvalidTransitionError(ContactState.AWAITING_UPLOAD, ContactState.AWAITING_UPLOAD)
    return dataclasses.replace(session, awaiting_upload=kind, pending_follow_ups=frozenset())


def complete_upload(session: SessionState, follow_ups: frozenset[TimerHandle]) -> SessionState:
    """Accepted file: back to Idle with a fresh follow-up set."""
    _check(session, ContactState.IDLE)
    if session.handoff_active:
        raise InvalidTransitionError(ContactState.HANDOFF_ACTIVE, ContactState.IDLE)
    return dataclasses.replace(session, awaiting_upload=None, pending_follow_ups=follow_ups)


def start_handoff(session: SessionState, timer: TimerHandle) -> SessionState:
    """Idle -> HandoffActive, or re-arm while already active."""
    _check(session, ContactState.HANDOFF_ACTIVE)
    return dataclasses.replace(
        session,
        handoff_active=True,
        handoff_timer=timer,
        awaiting_upload=None,
        pending_follow_ups=frozenset(),
    )


def end_handoff(session: SessionState) -> SessionState:
    """HandoffActive -> Idle, fired by the handoff timer."""
    if not session.handoff_active:
        raise InvalidTransitionError(state_of(session), ContactState.IDLE)
    return dataclasses.replace(session, handoff_active=False, handoff_timer=None)


def drop_follow_up(session: SessionState, handle: TimerHandle) -> SessionState:
    return dataclasses.replace(session, pending_follow_ups=session.pending_follow_ups - {handle})


def clear_follow_ups(session: SessionState) -> SessionState:
    return dataclasses.replace(session, pending_follow_ups=frozenset())


def check_invariants(session: SessionState) -> list[str]:
    """Return the list of violated invariants (empty when consistent)."""
    violations = []

    if session.handoff_active and session.awaiting_upload is not None:
        violations.append("awaiting_upload_during_handoff")

    if session.handoff_active and session.handoff_timer is None:
        violations.append("handoff_without_timer")

    if not session.handoff_active and session.handoff_timer is not None:
        violations.append("timer_without_handoff")

    if session.handoff_active and session.pending_follow_ups:
        violations.append("follow_ups_during_handoff")

    return violations
