from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import optional_mapping, require_non_empty, require_positive_radius
from ..core.enums import SessionStatus
from ..core.exceptions import AuthorizationError, InvalidStateTransition, NotFoundError, ValidationError
from ..geo.geofence import GeoPoint
from . import state
from .model import NewSession, Session, SessionChange
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return uuid.uuid4().hex


class SessionLifecycle:
    """Session state machine over the session repository.

    Every method re-reads the stored session, so callers never act on a stale copy.
    """

    def __init__(self, sessions: SessionRepository, *, clock: Clock | None = None):
        self._sessions = sessions
        self._clock = clock or SystemClock()

    @staticmethod
    def validate(new: NewSession) -> NewSession:
        class_id = require_non_empty(new.class_id, "class_id")
        teacher_id = require_non_empty(new.teacher_id, "teacher_id")
        location = GeoPoint.from_mapping(new.location)
        radius = require_positive_radius(new.radius_meters)
        extension = optional_mapping(new.extension, "extension")
        return NewSession(
            class_id=class_id,
            teacher_id=teacher_id,
            location=location,
            radius_meters=radius,
            extension=extension,
        )

    def create(
        self,
        new: NewSession,
        *,
        initial_status: SessionStatus = SessionStatus.ACTIVE,
        session_id: Optional[str] = None,
    ) -> Session:
        if initial_status not in (SessionStatus.SCHEDULED, SessionStatus.ACTIVE):
            raise ValidationError("A new session must be scheduled or active")

        new = self.validate(new)
        now = self._clock.now()
        session = Session(
            session_id=session_id or new_session_id(),
            class_id=new.class_id,
            teacher_id=new.teacher_id,
            status=initial_status,
            location=new.location,
            radius_meters=new.radius_meters,
            start_time=now if initial_status == SessionStatus.ACTIVE else None,
            end_time=None,
            created_at=now,
            last_updated=now,
            extension=dict(new.extension),
        )
        self._sessions.add(session)
        logger.info(
            "Session %s created for class %s by %s (status=%s)",
            session.session_id,
            session.class_id,
            session.teacher_id,
            session.status.value,
        )
        return session

    def get(self, session_id: str) -> Session:
        session_id = require_non_empty(session_id, "session_id")
        session = self._sessions.get(session_id)
        if not session:
            raise NotFoundError("Session not found")
        return session

    def get_owned(self, session_id: str, requester_id: str, *, action: str = "manage") -> Session:
        session = self.get(session_id)
        if session.teacher_id != requester_id:
            raise AuthorizationError(f"You do not have permission to {action} this session")
        return session

    def activate(self, session_id: str, requester_id: str) -> SessionChange:
        session = self.get_owned(session_id, requester_id, action="start")
        if session.status == SessionStatus.ACTIVE:
            return SessionChange(session=session, changed=False, message="Session is already active")

        updated = state.activated(session, now=self._clock.now())
        self._sessions.save(updated)
        logger.info("Session %s started", session_id)
        return SessionChange(session=updated, changed=True, message="Session started successfully")

    def end(self, session_id: str, requester_id: str) -> SessionChange:
        session = self.get_owned(session_id, requester_id, action="end")
        if session.status == SessionStatus.ENDED:
            return SessionChange(session=session, changed=False, message="Session is already ended")

        updated = state.ended(session, now=self._clock.now())
        self._sessions.save(updated, release_slot=True)
        logger.info("Session %s ended", session_id)
        return SessionChange(session=updated, changed=True, message="Session ended successfully")

    def cancel(self, session_id: str, requester_id: str) -> SessionChange:
        session = self.get_owned(session_id, requester_id, action="cancel")
        if session.status == SessionStatus.CANCELLED:
            return SessionChange(session=session, changed=False, message="Session is already cancelled")

        updated = state.cancelled(session, now=self._clock.now())
        self._sessions.save(updated, release_slot=True)
        logger.info("Session %s cancelled", session_id)
        return SessionChange(session=updated, changed=True, message="Session cancelled successfully")

    def reconcile_stale_active(self, class_id: str) -> Sequence[str]:
        """Repair sessions of a class still marked active after an end time was written.

        Returns the ids of the repaired sessions (empty when nothing drifted).
        """
        stale = [s for s in self._sessions.list_for_class(class_id, status=SessionStatus.ACTIVE) if s.is_stale_active]
        if not stale:
            return []

        now = self._clock.now()
        self._sessions.save_many([state.repaired(s, now=now) for s in stale], release_slots=True)
        repaired_ids = [s.session_id for s in stale]
        logger.warning(
            "Repaired %d session(s) marked active with an end time for class %s: %s",
            len(repaired_ids),
            class_id,
            ", ".join(repaired_ids),
        )
        return repaired_ids

    def update_location(
        self,
        session_id: str,
        requester_id: str,
        *,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Session:
        point = GeoPoint.from_mapping(location)
        radius = require_positive_radius(radius_meters)
        extra = optional_mapping(extension, "extension")

        session = self.get_owned(session_id, requester_id, action="update")
        if not session.is_truly_active:
            raise InvalidStateTransition("Cannot update location for an inactive session")

        updated = replace(
            session,
            location=point,
            radius_meters=radius,
            extension={**session.extension, **extra},
            last_updated=self._clock.now(),
        )
        self._sessions.save_geofence(updated)
        logger.info("Session %s geofence moved (radius=%.1fm)", session_id, radius)
        return updated
