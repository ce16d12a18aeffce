from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from ..common.datetime_utils import parse_iso_datetime, to_iso
from ..core.constants import CLASS_ACTIVE_SESSIONS_COLLECTION, SESSIONS_COLLECTION
from ..core.enums import SessionStatus
from ..database.document_store import DocumentStore, WriteOp
from ..geo.geofence import GeoPoint
from .model import Session
from .repository import SessionRepository


def session_to_fields(s: Session) -> dict:
    return {
        "session_id": s.session_id,
        "class_id": s.class_id,
        "teacher_id": s.teacher_id,
        "status": s.status.value,
        "location": s.location.to_dict(),
        "radius_meters": s.radius_meters,
        "start_time": to_iso(s.start_time),
        "end_time": to_iso(s.end_time),
        "created_at": to_iso(s.created_at),
        "last_updated": to_iso(s.last_updated),
        "extension": dict(s.extension),
    }


def session_from_fields(session_id: str, d: dict) -> Session:
    return Session(
        session_id=str(d.get("session_id") or session_id),
        class_id=str(d["class_id"]),
        teacher_id=str(d["teacher_id"]),
        status=SessionStatus(d["status"]),
        location=GeoPoint.from_mapping(d["location"]),
        radius_meters=float(d["radius_meters"]),
        start_time=parse_iso_datetime(d.get("start_time")),
        end_time=parse_iso_datetime(d.get("end_time")),
        created_at=parse_iso_datetime(d.get("created_at")),
        last_updated=parse_iso_datetime(d.get("last_updated")),
        extension=dict(d.get("extension") or {}),
    )


def _lifecycle_fields(s: Session) -> dict:
    return {
        "status": s.status.value,
        "start_time": to_iso(s.start_time),
        "end_time": to_iso(s.end_time),
        "last_updated": to_iso(s.last_updated),
    }


class DocumentSessionRepository(SessionRepository):
    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, session_id: str) -> Optional[Session]:
        doc = self._store.get(SESSIONS_COLLECTION, session_id)
        if not doc:
            return None
        return session_from_fields(session_id, doc)

    def add(self, session: Session) -> None:
        self._store.set(SESSIONS_COLLECTION, session.session_id, session_to_fields(session))

    def save(self, session: Session, *, release_slot: bool = False) -> None:
        self.save_many([session], release_slots=release_slot)

    def save_many(self, sessions: Sequence[Session], *, release_slots: bool = False) -> None:
        ops: List[WriteOp] = []
        for s in sessions:
            ops.append(WriteOp.update(SESSIONS_COLLECTION, s.session_id, _lifecycle_fields(s)))
            if release_slots and self.get_active_slot(s.class_id) == s.session_id:
                ops.append(WriteOp.delete(CLASS_ACTIVE_SESSIONS_COLLECTION, s.class_id))
        self._store.batch_commit(ops)

    def save_geofence(self, session: Session) -> None:
        self._store.update(
            SESSIONS_COLLECTION,
            session.session_id,
            {
                "location": session.location.to_dict(),
                "radius_meters": session.radius_meters,
                "extension": dict(session.extension),
                "last_updated": to_iso(session.last_updated),
            },
        )

    def list_for_class(self, class_id: str, *, status: Optional[SessionStatus] = None) -> Sequence[Session]:
        filters = {"class_id": class_id}
        if status is not None:
            filters["status"] = status.value
        docs = self._store.query(SESSIONS_COLLECTION, **filters)
        return [session_from_fields(d.doc_id, d.fields) for d in docs]

    def list_for_teacher(
        self,
        teacher_id: str,
        *,
        status: Optional[SessionStatus] = None,
        class_id: Optional[str] = None,
    ) -> Sequence[Session]:
        filters = {"teacher_id": teacher_id}
        if status is not None:
            filters["status"] = status.value
        if class_id:
            filters["class_id"] = class_id
        docs = self._store.query(SESSIONS_COLLECTION, **filters)
        return [session_from_fields(d.doc_id, d.fields) for d in docs]

    def claim_active_slot(self, class_id: str, session_id: str, *, claimed_at: datetime) -> bool:
        return self._store.create(
            CLASS_ACTIVE_SESSIONS_COLLECTION,
            class_id,
            {"class_id": class_id, "session_id": session_id, "claimed_at": to_iso(claimed_at)},
        )

    def get_active_slot(self, class_id: str) -> Optional[str]:
        doc = self._store.get(CLASS_ACTIVE_SESSIONS_COLLECTION, class_id)
        return str(doc["session_id"]) if doc and doc.get("session_id") else None

    def get_active_slot_claimed_at(self, class_id: str) -> Optional[datetime]:
        doc = self._store.get(CLASS_ACTIVE_SESSIONS_COLLECTION, class_id)
        return parse_iso_datetime(doc.get("claimed_at")) if doc else None

    def release_active_slot(self, class_id: str, session_id: str) -> None:
        if self.get_active_slot(class_id) == session_id:
            self._store.delete(CLASS_ACTIVE_SESSIONS_COLLECTION, class_id)
