"""Session status transitions.

scheduled -> active -> ended, and scheduled|active -> cancelled.
ended and cancelled are terminal.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ..core.enums import SessionStatus
from ..core.exceptions import InvalidStateTransition
from .model import Session

ALLOWED_TRANSITIONS = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.ACTIVE, SessionStatus.CANCELLED}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.ENDED, SessionStatus.CANCELLED}),
    SessionStatus.ENDED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def activated(session: Session, *, now: datetime) -> Session:
    if session.status == SessionStatus.ENDED:
        raise InvalidStateTransition("Cannot restart an ended session")
    if not can_transition(session.status, SessionStatus.ACTIVE):
        raise InvalidStateTransition(f"Cannot start a {session.status.value} session")
    return replace(
        session,
        status=SessionStatus.ACTIVE,
        start_time=now,
        end_time=None,
        last_updated=now,
    )


def ended(session: Session, *, now: datetime) -> Session:
    if session.status == SessionStatus.SCHEDULED:
        raise InvalidStateTransition("Cannot end a session that has not started")
    if not can_transition(session.status, SessionStatus.ENDED):
        raise InvalidStateTransition(f"Cannot end a {session.status.value} session")
    return replace(session, status=SessionStatus.ENDED, end_time=now, last_updated=now)


def cancelled(session: Session, *, now: datetime) -> Session:
    if not can_transition(session.status, SessionStatus.CANCELLED):
        raise InvalidStateTransition(f"Cannot cancel a {session.status.value} session")
    return replace(session, status=SessionStatus.CANCELLED, end_time=now, last_updated=now)


def repaired(session: Session, *, now: datetime) -> Session:
    """Correct a stale ``active`` session (end time already set) to ``ended``.

    The stored end time is kept.
    """
    return replace(session, status=SessionStatus.ENDED, last_updated=now)
