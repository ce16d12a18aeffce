from __future__ import annotations

from typing import Optional, Sequence

from ..common.datetime_utils import parse_iso_datetime, to_iso
from ..core.constants import ATTENDANCE_COLLECTION, VERIFICATION_REQUESTS_COLLECTION
from ..core.enums import AttendanceStatus, VerificationRequestStatus
from ..database.document_store import DocumentStore, WriteOp
from ..geo.geofence import GeoPoint
from .model import AttendanceRecord, VerificationRequest
from .repository import AttendanceRepository


def attendance_doc_id(session_id: str, student_id: str) -> str:
    return f"{session_id}:{student_id}"


def record_to_fields(r: AttendanceRecord) -> dict:
    return {
        "session_id": r.session_id,
        "student_id": r.student_id,
        "class_id": r.class_id,
        "status": r.status.value,
        "check_in_time": to_iso(r.check_in_time),
        "check_in_location": r.check_in_location.to_dict() if r.check_in_location else None,
        "check_out_time": to_iso(r.check_out_time),
        "distance_meters": r.distance_meters,
        "is_gps_verified": bool(r.is_gps_verified),
        "duration_minutes": r.duration_minutes,
        "manually_updated": bool(r.manually_updated),
        "manually_updated_by": r.manually_updated_by,
        "verification_response_time": to_iso(r.verification_response_time),
        "last_updated": to_iso(r.last_updated),
        "extension": dict(r.extension),
    }


def record_from_fields(d: dict) -> AttendanceRecord:
    loc = d.get("check_in_location")
    distance = d.get("distance_meters")
    duration = d.get("duration_minutes")
    return AttendanceRecord(
        session_id=str(d["session_id"]),
        student_id=str(d["student_id"]),
        class_id=str(d.get("class_id") or ""),
        status=AttendanceStatus(d["status"]),
        check_in_time=parse_iso_datetime(d.get("check_in_time")),
        check_in_location=GeoPoint.from_mapping(loc) if loc else None,
        check_out_time=parse_iso_datetime(d.get("check_out_time")),
        distance_meters=float(distance) if distance is not None else None,
        is_gps_verified=bool(d.get("is_gps_verified", False)),
        duration_minutes=int(duration) if duration is not None else None,
        manually_updated=bool(d.get("manually_updated", False)),
        manually_updated_by=d.get("manually_updated_by"),
        verification_response_time=parse_iso_datetime(d.get("verification_response_time")),
        last_updated=parse_iso_datetime(d.get("last_updated")),
        extension=dict(d.get("extension") or {}),
    )


def request_to_fields(r: VerificationRequest) -> dict:
    return {
        "session_id": r.session_id,
        "student_id": r.student_id,
        "status": r.status.value,
        "requested_by": r.requested_by,
        "requested_at": to_iso(r.requested_at),
        "response_time": to_iso(r.response_time),
        "response_data": dict(r.response_data),
        "extension": dict(r.extension),
    }


def request_from_fields(d: dict) -> VerificationRequest:
    return VerificationRequest(
        session_id=str(d["session_id"]),
        student_id=str(d["student_id"]),
        status=VerificationRequestStatus(d["status"]),
        requested_by=str(d.get("requested_by") or ""),
        requested_at=parse_iso_datetime(d.get("requested_at")),
        response_time=parse_iso_datetime(d.get("response_time")),
        response_data=dict(d.get("response_data") or {}),
        extension=dict(d.get("extension") or {}),
    )


class DocumentAttendanceRepository(AttendanceRepository):
    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        doc = self._store.get(ATTENDANCE_COLLECTION, attendance_doc_id(session_id, student_id))
        return record_from_fields(doc) if doc else None

    def create(self, record: AttendanceRecord) -> bool:
        return self._store.create(
            ATTENDANCE_COLLECTION,
            attendance_doc_id(record.session_id, record.student_id),
            record_to_fields(record),
        )

    def update(self, record: AttendanceRecord) -> None:
        self._store.update(
            ATTENDANCE_COLLECTION,
            attendance_doc_id(record.session_id, record.student_id),
            record_to_fields(record),
        )

    def put(self, record: AttendanceRecord) -> None:
        self._store.set(
            ATTENDANCE_COLLECTION,
            attendance_doc_id(record.session_id, record.student_id),
            record_to_fields(record),
        )

    def delete(self, session_id: str, student_id: str) -> None:
        self._store.delete(ATTENDANCE_COLLECTION, attendance_doc_id(session_id, student_id))

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        docs = self._store.query(ATTENDANCE_COLLECTION, session_id=session_id)
        return [record_from_fields(d.fields) for d in docs]

    def get_verification_request(self, session_id: str, student_id: str) -> Optional[VerificationRequest]:
        doc = self._store.get(VERIFICATION_REQUESTS_COLLECTION, attendance_doc_id(session_id, student_id))
        return request_from_fields(doc) if doc else None

    def put_verification_request(self, request: VerificationRequest) -> None:
        self._store.set(
            VERIFICATION_REQUESTS_COLLECTION,
            attendance_doc_id(request.session_id, request.student_id),
            request_to_fields(request),
        )

    def save_verification_response(self, record: AttendanceRecord, request: VerificationRequest) -> None:
        self._store.batch_commit(
            [
                WriteOp.update(
                    VERIFICATION_REQUESTS_COLLECTION,
                    attendance_doc_id(request.session_id, request.student_id),
                    request_to_fields(request),
                ),
                WriteOp.update(
                    ATTENDANCE_COLLECTION,
                    attendance_doc_id(record.session_id, record.student_id),
                    record_to_fields(record),
                ),
            ]
        )
