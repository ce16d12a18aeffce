"""Boundary API.

Every method returns a :class:`Result` and never raises, so HTTP handlers,
CLIs and UIs only need to look at ``ok`` / ``error_kind`` / ``message``.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from .attendance.report_service import AttendanceReportService
from .attendance.service import AttendanceCoordinator
from .common.serialization import to_jsonable
from .core.enums import SessionStatus
from .core.exceptions import DomainError, StoreError, ValidationError
from .core.result import Result
from .sessions.service import SessionManager

logger = logging.getLogger(__name__)

GENERIC_STORE_MESSAGE = "The attendance service is temporarily unavailable. Please try again."


class AttendanceApi:
    def __init__(
        self,
        sessions: SessionManager,
        coordinator: AttendanceCoordinator,
        reports: AttendanceReportService,
    ):
        self._sessions = sessions
        self._coordinator = coordinator
        self._reports = reports

    @staticmethod
    def _run(operation: str, fn: Callable[[], Any], *, message: Optional[Callable[[Any], str]] = None) -> Result:
        try:
            value = fn()
        except StoreError as e:
            logger.error("%s failed in the document store: %s", operation, e, exc_info=True)
            return Result.failure(StoreError.kind, GENERIC_STORE_MESSAGE)
        except DomainError as e:
            logger.warning("%s rejected (%s): %s", operation, e.kind, e)
            return Result.failure(e.kind, str(e))
        except Exception:
            logger.exception("Unexpected error during %s", operation)
            return Result.failure(StoreError.kind, GENERIC_STORE_MESSAGE)
        return Result.success(to_jsonable(value), message=message(value) if message else None)

    # Sessions

    def create_session(
        self,
        *,
        class_id: str,
        teacher_id: str,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "create_session",
            lambda: self._sessions.create_session(
                class_id=class_id,
                teacher_id=teacher_id,
                location=location,
                radius_meters=radius_meters,
                extension=extension,
            ),
            message=lambda _: "Session created successfully",
        )

    def schedule_session(
        self,
        *,
        class_id: str,
        teacher_id: str,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "schedule_session",
            lambda: self._sessions.schedule_session(
                class_id=class_id,
                teacher_id=teacher_id,
                location=location,
                radius_meters=radius_meters,
                extension=extension,
            ),
            message=lambda _: "Session scheduled successfully",
        )

    def start_session(self, *, session_id: str, teacher_id: str) -> Result:
        return self._run(
            "start_session",
            lambda: self._sessions.start_session(session_id=session_id, teacher_id=teacher_id),
            message=lambda change: change.message,
        )

    def end_session(self, *, session_id: str, teacher_id: str) -> Result:
        return self._run(
            "end_session",
            lambda: self._sessions.end_session(session_id=session_id, teacher_id=teacher_id),
            message=lambda change: change.message,
        )

    def cancel_session(self, *, session_id: str, teacher_id: str) -> Result:
        return self._run(
            "cancel_session",
            lambda: self._sessions.cancel_session(session_id=session_id, teacher_id=teacher_id),
            message=lambda change: change.message,
        )

    def update_session_location(
        self,
        *,
        session_id: str,
        teacher_id: str,
        location: Any,
        radius_meters: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "update_session_location",
            lambda: self._sessions.update_session_location(
                session_id=session_id,
                teacher_id=teacher_id,
                location=location,
                radius_meters=radius_meters,
                extension=extension,
            ),
            message=lambda _: "Session location updated successfully",
        )

    def get_session(self, *, session_id: str) -> Result:
        return self._run("get_session", lambda: self._sessions.get_session(session_id))

    def list_teacher_sessions(
        self,
        *,
        teacher_id: str,
        status: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> Result:
        def run():
            parsed: Optional[SessionStatus] = None
            if status and status != "all":
                try:
                    parsed = SessionStatus(status)
                except ValueError:
                    raise ValidationError(f"Unknown session status: {status}")
            return self._sessions.list_teacher_sessions(teacher_id=teacher_id, status=parsed, class_id=class_id)

        return self._run("list_teacher_sessions", run)

    # Attendance

    def check_in(
        self,
        *,
        session_id: str,
        student_id: str,
        location: Any,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "check_in",
            lambda: self._coordinator.check_in(
                session_id=session_id,
                student_id=student_id,
                location=location,
                extension=extension,
            ),
            message=lambda r: r.message,
        )

    def check_out(
        self,
        *,
        session_id: str,
        student_id: str,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "check_out",
            lambda: self._coordinator.check_out(session_id=session_id, student_id=student_id, extension=extension),
            message=lambda r: r.message,
        )

    def manual_override(
        self,
        *,
        session_id: str,
        student_id: str,
        new_status: Any,
        teacher_id: str,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "manual_override",
            lambda: self._coordinator.manual_override(
                session_id=session_id,
                student_id=student_id,
                new_status=new_status,
                teacher_id=teacher_id,
                extension=extension,
            ),
            message=lambda r: r.message,
        )

    def request_verification(
        self,
        *,
        session_id: str,
        student_id: str,
        teacher_id: str,
        extension: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        return self._run(
            "request_verification",
            lambda: self._coordinator.request_verification(
                session_id=session_id,
                student_id=student_id,
                teacher_id=teacher_id,
                extension=extension,
            ),
            message=lambda _: "Verification requested",
        )

    def respond_to_verification(self, *, session_id: str, student_id: str, payload: Any) -> Result:
        return self._run(
            "respond_to_verification",
            lambda: self._coordinator.respond_to_verification(
                session_id=session_id,
                student_id=student_id,
                payload=payload,
            ),
            message=lambda _: "Verification response submitted successfully",
        )

    def validate_location(self, *, session_id: str, location: Any) -> Result:
        return self._run(
            "validate_location",
            lambda: self._coordinator.validate_location(session_id=session_id, location=location),
        )

    # Reports

    def get_session_attendance(self, *, session_id: str, teacher_id: Optional[str] = None) -> Result:
        return self._run(
            "get_session_attendance",
            lambda: self._reports.get_session_attendance(session_id=session_id, teacher_id=teacher_id),
        )

    def get_attendance_status(self, *, session_id: str, student_id: str) -> Result:
        return self._run(
            "get_attendance_status",
            lambda: self._reports.get_attendance_status(session_id=session_id, student_id=student_id),
        )

    def get_class_attendance_history(self, *, class_id: str, teacher_id: str) -> Result:
        return self._run(
            "get_class_attendance_history",
            lambda: self._reports.get_class_attendance_history(class_id=class_id, teacher_id=teacher_id),
        )

    def list_active_sessions_for_student(self, *, student_id: str) -> Result:
        return self._run(
            "list_active_sessions_for_student",
            lambda: self._reports.list_active_sessions_for_student(student_id=student_id),
        )
