from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..classes.model import ClassInfo
from ..classes.repository import ClassDirectory
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_non_empty
from ..core.constants import ABANDONED_SLOT_SECONDS
from ..core.enums import SessionStatus
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError
from .lifecycle import SessionLifecycle, new_session_id
from .model import NewSession, Session, SessionChange
from .repository import SessionRepository

logger = logging.getLogger(__name__)

ACTIVE_CONFLICT_MESSAGE = "There is already an active session for this class"


class SessionManager:
    """Teacher-facing session orchestration.

    Enforces class ownership and the one-active-session-per-class rule. The
    rule is best-effort: a per-class marker claimed with an insert-if-absent
    write narrows, but does not close, the window between the check and the
    write.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        lifecycle: SessionLifecycle,
        classes: ClassDirectory,
        *,
        clock: Clock | None = None,
    ):
        self._sessions = sessions
        self._lifecycle = lifecycle
        self._classes = classes
        self._clock = clock or SystemClock()

    def _require_class_owner(self, class_id: str, teacher_id: str) -> ClassInfo:
        class_id = require_non_empty(class_id, "class_id")
        teacher_id = require_non_empty(teacher_id, "teacher_id")
        info = self._classes.get_class(class_id)
        if not info:
            raise NotFoundError("Class not found")
        if info.teacher_id != teacher_id:
            raise AuthorizationError("You do not have permission to manage sessions for this class")
        return info

    def _ensure_no_active(self, class_id: str, *, exclude: Optional[str] = None) -> None:
        self._lifecycle.reconcile_stale_active(class_id)
        active = [
            s
            for s in self._sessions.list_for_class(class_id, status=SessionStatus.ACTIVE)
            if s.is_truly_active and s.session_id != exclude
        ]
        if active:
            logger.warning("Class %s already has active session %s", class_id, active[0].session_id)
            raise ConflictError(ACTIVE_CONFLICT_MESSAGE)

    def _claim_slot(self, class_id: str, session_id: str) -> None:
        now = self._clock.now()
        if self._sessions.claim_active_slot(class_id, session_id, claimed_at=now):
            return

        holder_id = self._sessions.get_active_slot(class_id)
        if holder_id == session_id:
            return
        holder = self._sessions.get(holder_id) if holder_id else None
        if holder is None:
            # Holder not written yet: a concurrent create is in flight, unless the
            # marker is old enough to have been abandoned.
            claimed_at = self._sessions.get_active_slot_claimed_at(class_id)
            if holder_id and claimed_at is not None and (now - claimed_at).total_seconds() < ABANDONED_SLOT_SECONDS:
                raise ConflictError(ACTIVE_CONFLICT_MESSAGE)
        elif holder.is_truly_active:
            raise ConflictError(ACTIVE_CONFLICT_MESSAGE)

        logger.warning("Releasing stale active-session marker of class %s (session %s)", class_id, holder_id)
        if holder_id:
            self._sessions.release_active_slot(class_id, holder_id)
        if not self._sessions.claim_active_slot(class_id, session_id, claimed_at=now):
            raise ConflictError(ACTIVE_CONFLICT_MESSAGE)

        # Marker left behind by a session that is no longer active.
        logger.warning("Releasing stale active-session marker of class %s (session %s)", class_id, holder_id)
        if holder_id:
            self._sessions.release_active_slot(class_id, holder_id)
        if not self._sessions.claim_active_slot(class_id, session_id):
            raise ConflictError(ACTIVE_CONFLICT_MESSAGE)

    def create_session(
        self,
        *,
        class_id: str,
        teacher_id: str,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Session:
        info = self._require_class_owner(class_id, teacher_id)
        new = self._lifecycle.validate(
            NewSession(
                class_id=info.class_id,
                teacher_id=teacher_id,
                location=location,
                radius_meters=radius_meters,
                extension=dict(extension or {}),
            )
        )

        self._ensure_no_active(info.class_id)

        session_id = new_session_id()
        self._claim_slot(info.class_id, session_id)
        try:
            return self._lifecycle.create(new, initial_status=SessionStatus.ACTIVE, session_id=session_id)
        except Exception:
            self._sessions.release_active_slot(info.class_id, session_id)
            raise

    def schedule_session(
        self,
        *,
        class_id: str,
        teacher_id: str,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Session:
        info = self._require_class_owner(class_id, teacher_id)
        new = NewSession(
            class_id=info.class_id,
            teacher_id=teacher_id,
            location=location,
            radius_meters=radius_meters,
            extension=dict(extension or {}),
        )
        return self._lifecycle.create(new, initial_status=SessionStatus.SCHEDULED)

    def start_session(self, *, session_id: str, teacher_id: str) -> SessionChange:
        session = self._lifecycle.get_owned(session_id, teacher_id, action="start")
        self._require_class_owner(session.class_id, teacher_id)

        claimed = False
        if session.status == SessionStatus.SCHEDULED:
            self._ensure_no_active(session.class_id, exclude=session.session_id)
            self._claim_slot(session.class_id, session.session_id)
            claimed = True
        try:
            return self._lifecycle.activate(session_id, teacher_id)
        except Exception:
            if claimed:
                self._sessions.release_active_slot(session.class_id, session.session_id)
            raise

    def end_session(self, *, session_id: str, teacher_id: str) -> SessionChange:
        session = self._lifecycle.get_owned(session_id, teacher_id, action="end")
        self._require_class_owner(session.class_id, teacher_id)
        return self._lifecycle.end(session_id, teacher_id)

    def cancel_session(self, *, session_id: str, teacher_id: str) -> SessionChange:
        session = self._lifecycle.get_owned(session_id, teacher_id, action="cancel")
        self._require_class_owner(session.class_id, teacher_id)
        return self._lifecycle.cancel(session_id, teacher_id)

    def update_session_location(
        self,
        *,
        session_id: str,
        teacher_id: str,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Session:
        return self._lifecycle.update_location(
            session_id,
            teacher_id,
            location=location,
            radius_meters=radius_meters,
            extension=extension,
        )

    def get_session(self, session_id: str) -> Session:
        return self._lifecycle.get(session_id)

    def list_teacher_sessions(
        self,
        *,
        teacher_id: str,
        status: Optional[SessionStatus] = None,
        class_id: Optional[str] = None,
    ) -> Sequence[Session]:
        teacher_id = require_non_empty(teacher_id, "teacher_id")
        sessions = list(self._sessions.list_for_teacher(teacher_id, status=status, class_id=class_id))
        sessions.sort(key=_start_sort_key, reverse=True)
        return sessions


def _start_sort_key(session: Session):
    # Most recent first; sessions that never started sort by creation time.
    moment = session.start_time or session.created_at
    return moment.timestamp() if moment else 0.0
