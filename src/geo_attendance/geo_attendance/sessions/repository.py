from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SessionStatus
from .model import Session


class SessionRepository(Protocol):
    def get(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def add(self, session: Session) -> None:
        raise NotImplementedError

    def save(self, session: Session, *, release_slot: bool = False) -> None:
        """Persist the lifecycle fields (status, start/end time) of an existing session.

        With ``release_slot`` the class's active-session marker is deleted in
        the same batch when it still points at this session.
        """

        raise NotImplementedError

    def save_many(self, sessions: Sequence[Session], *, release_slots: bool = False) -> None:
        raise NotImplementedError

    def save_geofence(self, session: Session) -> None:
        """Persist only location, radius and extension of an existing session."""

        raise NotImplementedError

    def list_for_class(self, class_id: str, *, status: Optional[SessionStatus] = None) -> Sequence[Session]:
        raise NotImplementedError

    def list_for_teacher(
        self,
        teacher_id: str,
        *,
        status: Optional[SessionStatus] = None,
        class_id: Optional[str] = None,
    ) -> Sequence[Session]:
        raise NotImplementedError

    def claim_active_slot(self, class_id: str, session_id: str, *, claimed_at: datetime) -> bool:
        """Conditional write of the per-class active marker; False if already held."""

        raise NotImplementedError

    def get_active_slot(self, class_id: str) -> Optional[str]:
        raise NotImplementedError

    def get_active_slot_claimed_at(self, class_id: str) -> Optional[datetime]:
        raise NotImplementedError

    def release_active_slot(self, class_id: str, session_id: str) -> None:
        raise NotImplementedError
