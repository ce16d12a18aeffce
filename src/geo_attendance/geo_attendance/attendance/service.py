from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from ..classes.repository import ClassDirectory
from ..common.datetime_utils import Clock, SystemClock, minutes_between, to_iso
from ..common.validators import optional_mapping, require_non_empty
from ..core.enums import OVERRIDE_STATUSES, AttendanceStatus, VerificationRequestStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from ..geo.geofence import GeoPoint, check_geofence
from ..sessions.model import Session
from ..sessions.repository import SessionRepository
from .factory import AttendanceStrategyFactory
from .model import (
    AttendanceRecord,
    CheckInResult,
    CheckOutResult,
    LocationCheck,
    OverrideResult,
    VerificationOutcome,
    VerificationRequest,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _effective_status(session: Session) -> str:
    return "ended" if session.is_stale_active else session.status.value


class AttendanceCoordinator:
    """Student check-in/out, teacher overrides and location re-verification.

    Reads the session on every call; only attendance and verification
    request documents are written here.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        classes: ClassDirectory,
        *,
        clock: Clock | None = None,
        strategy_factory: AttendanceStrategyFactory | None = None,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._classes = classes
        self._clock = clock or SystemClock()
        self._factory = strategy_factory or AttendanceStrategyFactory()

    def _load_session(self, session_id: str) -> Session:
        session = self._sessions.get(require_non_empty(session_id, "session_id"))
        if not session:
            raise NotFoundError("Session not found")
        return session

    def _load_active_session(self, session_id: str, *, message: Optional[str] = None) -> Session:
        session = self._load_session(session_id)
        if not session.is_truly_active:
            raise InvalidStateTransition(message or f"Session is {_effective_status(session)}, not active")
        return session

    def check_in(
        self,
        *,
        session_id: str,
        student_id: str,
        location: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> CheckInResult:
        student_id = require_non_empty(student_id, "student_id")
        point = GeoPoint.from_mapping(location)
        extra = optional_mapping(extension, "extension")

        session = self._load_active_session(session_id)
        if not self._classes.is_enrolled(session.class_id, student_id):
            raise AuthorizationError("You are not enrolled in this class")
        if self._attendance.get(session.session_id, student_id):
            raise ConflictError("You have already checked in to this session")

        within, distance = check_geofence(session.location, session.radius_meters, point)
        strategy = self._factory.for_checkin(distance_meters=distance, radius_meters=session.radius_meters)
        decision = strategy.decide_checkin(distance_meters=distance, radius_meters=session.radius_meters)

        now = self._clock.now()
        record = AttendanceRecord(
            session_id=session.session_id,
            student_id=student_id,
            class_id=session.class_id,
            status=decision.status,
            check_in_time=now,
            check_in_location=point,
            check_out_time=None,
            distance_meters=distance,
            is_gps_verified=decision.is_gps_verified,
            last_updated=now,
            extension=extra,
        )
        if not self._attendance.create(record):
            # Lost the race against a concurrent check-in of the same student.
            raise ConflictError("You have already checked in to this session")

        logger.info(
            "Student %s checked in to session %s: %s (%.1fm, radius %.1fm)",
            student_id,
            session.session_id,
            record.status.value,
            distance,
            session.radius_meters,
        )
        return CheckInResult(record=record, is_within_radius=within, message=decision.message)

    def check_out(
        self,
        *,
        session_id: str,
        student_id: str,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> CheckOutResult:
        student_id = require_non_empty(student_id, "student_id")
        extra = optional_mapping(extension, "extension")

        session = self._load_active_session(session_id, message="Cannot check out from an inactive session")
        record = self._attendance.get(session.session_id, student_id)
        if not record:
            raise NotFoundError("No attendance record found. You must check in before you can check out.")
        if record.has_checked_out:
            return CheckOutResult(
                record=record,
                already_checked_out=True,
                message="You have already checked out from this session",
            )

        now = self._clock.now()
        merged = {**record.extension, **extra}
        if extra:
            checkout_info = {}
            for source in (record.extension.get("checkout_info"), extra.get("checkout_info")):
                if isinstance(source, Mapping):
                    checkout_info.update(source)
            checkout_info.update({k: v for k, v in extra.items() if k != "checkout_info"})
            checkout_info["timestamp"] = to_iso(now)
            merged["checkout_info"] = checkout_info

        strategy = self._factory.for_checkout(current_status=record.status)
        decision = strategy.decide_checkout(current=record.status, is_gps_verified=record.is_gps_verified)

        updated = replace(
            record,
            status=decision.status,
            is_gps_verified=decision.is_gps_verified,
            check_out_time=now,
            duration_minutes=minutes_between(record.check_in_time, now) if record.check_in_time else None,
            last_updated=now,
            extension=merged,
        )
        self._attendance.update(updated)
        logger.info(
            "Student %s checked out of session %s after %s minute(s) (%s)",
            student_id,
            session.session_id,
            updated.duration_minutes,
            updated.status.value,
        )
        return CheckOutResult(record=updated, already_checked_out=False, message=decision.message)

    @staticmethod
    def _parse_override_status(new_status: Any) -> AttendanceStatus:
        allowed = ", ".join(sorted(s.value for s in OVERRIDE_STATUSES))
        try:
            status = AttendanceStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid status. Must be one of: {allowed}")
        if status not in OVERRIDE_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {allowed}")
        return status

    def manual_override(
        self,
        *,
        session_id: str,
        student_id: str,
        new_status: Any,
        teacher_id: str,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> OverrideResult:
        student_id = require_non_empty(student_id, "student_id")
        teacher_id = require_non_empty(teacher_id, "teacher_id")
        extra = optional_mapping(extension, "extension")

        session = self._load_session(session_id)
        if session.teacher_id != teacher_id:
            raise AuthorizationError("You do not have permission to update attendance for this session")
        status = self._parse_override_status(new_status)
        if not self._classes.is_enrolled(session.class_id, student_id):
            raise NotFoundError("Student is not enrolled in this class")

        message = f"Student attendance successfully marked as '{status.value}'"
        if status == AttendanceStatus.ABSENT:
            self._attendance.delete(session.session_id, student_id)
            logger.info("Teacher %s marked %s absent in session %s", teacher_id, student_id, session.session_id)
            return OverrideResult(student_id=student_id, status=status, record=None, message=message)

        now = self._clock.now()
        existing = self._attendance.get(session.session_id, student_id)
        if existing:
            record = replace(
                existing,
                status=status,
                is_gps_verified=status == AttendanceStatus.VERIFIED,
                manually_updated=True,
                manually_updated_by=teacher_id,
                last_updated=now,
                extension={**existing.extension, **extra},
            )
        else:
            record = AttendanceRecord(
                session_id=session.session_id,
                student_id=student_id,
                class_id=session.class_id,
                status=status,
                check_in_time=now,
                is_gps_verified=status == AttendanceStatus.VERIFIED,
                manually_updated=True,
                manually_updated_by=teacher_id,
                last_updated=now,
                extension=extra,
            )
        self._attendance.put(record)
        logger.info(
            "Teacher %s set %s to %s in session %s",
            teacher_id,
            student_id,
            status.value,
            session.session_id,
        )
        return OverrideResult(student_id=student_id, status=status, record=record, message=message)

    def request_verification(
        self,
        *,
        session_id: str,
        student_id: str,
        teacher_id: str,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> VerificationRequest:
        student_id = require_non_empty(student_id, "student_id")
        teacher_id = require_non_empty(teacher_id, "teacher_id")
        extra = optional_mapping(extension, "extension")

        session = self._load_session(session_id)
        if session.teacher_id != teacher_id:
            raise AuthorizationError("You do not have permission to request verification for this session")
        if not session.is_truly_active:
            raise InvalidStateTransition(f"Session is {_effective_status(session)}, not active")
        if not self._attendance.get(session.session_id, student_id):
            raise NotFoundError("Student has not checked in to this session")

        existing = self._attendance.get_verification_request(session.session_id, student_id)
        if existing and existing.status == VerificationRequestStatus.PENDING:
            return existing

        request = VerificationRequest(
            session_id=session.session_id,
            student_id=student_id,
            status=VerificationRequestStatus.PENDING,
            requested_by=teacher_id,
            requested_at=self._clock.now(),
            extension=extra,
        )
        self._attendance.put_verification_request(request)
        logger.info("Verification requested from %s in session %s", student_id, session.session_id)
        return request

    def respond_to_verification(
        self,
        *,
        session_id: str,
        student_id: str,
        payload: Mapping[str, Any],
    ) -> VerificationOutcome:
        student_id = require_non_empty(student_id, "student_id")
        if not isinstance(payload, Mapping):
            raise ValidationError("Valid verification data is required")
        extra = optional_mapping(payload.get("extension"), "extension")
        raw_location = payload.get("location")
        point = GeoPoint.from_mapping(raw_location) if raw_location is not None else None

        session = self._load_active_session(session_id)
        record = self._attendance.get(session.session_id, student_id)
        if not record:
            raise NotFoundError("You have not checked in to this session")
        request = self._attendance.get_verification_request(session.session_id, student_id)
        if not request:
            raise NotFoundError("No verification request found")
        if request.status != VerificationRequestStatus.PENDING:
            raise InvalidStateTransition(f"Verification request is {request.status.value}, not pending")

        verified = False
        distance: Optional[float] = None
        if point is not None:
            verified, distance = check_geofence(session.location, session.radius_meters, point)

        now = self._clock.now()
        response_data = {k: v for k, v in payload.items() if k not in ("extension", "location")}
        if point is not None:
            response_data["location"] = point.to_dict()
        response_data["extension"] = extra

        answered = replace(
            request,
            status=VerificationRequestStatus.COMPLETED,
            response_time=now,
            response_data=response_data,
        )
        updated = replace(
            record,
            verification_response_time=now,
            last_updated=now,
            extension={**record.extension, **extra},
        )
        if verified:
            updated = replace(updated, status=AttendanceStatus.VERIFIED, is_gps_verified=True)

        self._attendance.save_verification_response(updated, answered)
        logger.info(
            "Verification response from %s in session %s: verified=%s",
            student_id,
            session.session_id,
            verified,
        )
        return VerificationOutcome(record=updated, request=answered, verified=verified, distance_meters=distance)

    def validate_location(self, *, session_id: str, location: Any) -> LocationCheck:
        point = GeoPoint.from_mapping(location)
        session = self._load_active_session(session_id)
        within, distance = check_geofence(session.location, session.radius_meters, point)
        return LocationCheck(is_within_radius=within, distance_meters=distance, radius_meters=session.radius_meters)
