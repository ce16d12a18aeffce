from __future__ import annotations

from typing import List, Optional, Sequence

from ..classes.repository import ClassDirectory
from ..common.validators import require_non_empty
from ..core.enums import PRESENT_STATUSES, AttendanceStatus, SessionStatus
from ..core.exceptions import AuthorizationError, NotFoundError
from ..sessions.model import Session
from ..sessions.repository import SessionRepository
from .model import (
    AttendanceRecord,
    ClassAttendanceHistory,
    SessionAttendanceStats,
    SessionAttendanceSummary,
    StudentActiveSession,
    StudentAttendance,
)
from .repository import AttendanceRepository


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


def _count(records: Sequence[AttendanceRecord], status: AttendanceStatus) -> int:
    return sum(1 for r in records if r.status == status)


def _recent_first(moment) -> float:
    return moment.timestamp() if moment else 0.0


class AttendanceReportService:
    """Read-side views over sessions and attendance records."""

    def __init__(self, attendance: AttendanceRepository, sessions: SessionRepository, classes: ClassDirectory):
        self._attendance = attendance
        self._sessions = sessions
        self._classes = classes

    def _load_session(self, session_id: str) -> Session:
        session = self._sessions.get(require_non_empty(session_id, "session_id"))
        if not session:
            raise NotFoundError("Session not found")
        return session

    def get_attendance_status(self, *, session_id: str, student_id: str) -> StudentAttendance:
        student_id = require_non_empty(student_id, "student_id")
        session = self._load_session(session_id)
        record = self._attendance.get(session.session_id, student_id)
        if not record:
            return StudentAttendance(
                session_id=session.session_id,
                student_id=student_id,
                status=AttendanceStatus.ABSENT,
                has_attended=False,
            )
        return StudentAttendance(
            session_id=session.session_id,
            student_id=student_id,
            status=record.status,
            has_attended=True,
            record=record,
        )

    def get_session_attendance(self, *, session_id: str, teacher_id: Optional[str] = None) -> SessionAttendanceSummary:
        session = self._load_session(session_id)
        if teacher_id and session.teacher_id != teacher_id:
            raise AuthorizationError("You do not have permission to view attendance for this session")

        enrolled = list(self._classes.list_students(session.class_id))
        by_student = {r.student_id: r for r in self._attendance.list_for_session(session.session_id)}

        rows: List[StudentAttendance] = []
        for student_id in enrolled:
            record = by_student.get(student_id)
            rows.append(
                StudentAttendance(
                    session_id=session.session_id,
                    student_id=student_id,
                    status=record.status if record else AttendanceStatus.ABSENT,
                    has_attended=record is not None,
                    record=record,
                )
            )

        present = [row.record for row in rows if row.record is not None]
        verified = _count(present, AttendanceStatus.VERIFIED)
        failed = _count(present, AttendanceStatus.FAILED_LOCATION)
        early = _count(present, AttendanceStatus.CHECKED_OUT_EARLY)
        absent = sum(1 for row in rows if row.status == AttendanceStatus.ABSENT)

        return SessionAttendanceSummary(
            session_id=session.session_id,
            class_id=session.class_id,
            status=session.status.value,
            start_time=session.start_time,
            end_time=session.end_time,
            enrolled_student_count=len(enrolled),
            present_count=sum(1 for r in present if r.status in PRESENT_STATUSES),
            verified=verified,
            failed=failed,
            early_checkout=early,
            absent=absent,
            attendance_rate=_rate(verified + failed + early, len(enrolled)),
            records=tuple(rows),
        )

    def get_class_attendance_history(self, *, class_id: str, teacher_id: str) -> ClassAttendanceHistory:
        class_id = require_non_empty(class_id, "class_id")
        teacher_id = require_non_empty(teacher_id, "teacher_id")
        info = self._classes.get_class(class_id)
        if not info:
            raise NotFoundError("Class not found")
        if info.teacher_id != teacher_id:
            raise AuthorizationError("You do not have permission to view attendance for this class")

        enrolled_count = len(self._classes.list_students(class_id))
        stats: List[SessionAttendanceStats] = []
        for session in self._sessions.list_for_class(class_id):
            records = list(self._attendance.list_for_session(session.session_id))
            stats.append(
                SessionAttendanceStats(
                    session_id=session.session_id,
                    status=session.status.value,
                    start_time=session.start_time,
                    end_time=session.end_time,
                    attendance_count=len(records),
                    verified=_count(records, AttendanceStatus.VERIFIED),
                    failed=_count(records, AttendanceStatus.FAILED_LOCATION),
                    early_checkout=_count(records, AttendanceStatus.CHECKED_OUT_EARLY),
                    absent=max(0, enrolled_count - len(records)),
                    attendance_rate=_rate(len(records), enrolled_count),
                )
            )
        stats.sort(key=lambda s: _recent_first(s.start_time), reverse=True)

        verified = sum(s.verified for s in stats)
        failed = sum(s.failed for s in stats)
        early = sum(s.early_checkout for s in stats)
        return ClassAttendanceHistory(
            class_id=class_id,
            total_sessions=len(stats),
            enrolled_student_count=enrolled_count,
            overall_attendance_rate=_rate(verified + failed + early, enrolled_count * len(stats)),
            overall_verified=verified,
            overall_failed=failed,
            overall_early_checkout=early,
            overall_absent=sum(s.absent for s in stats),
            sessions=tuple(stats),
        )

    def list_active_sessions_for_student(self, *, student_id: str) -> Sequence[StudentActiveSession]:
        student_id = require_non_empty(student_id, "student_id")
        out: List[StudentActiveSession] = []
        for class_id in self._classes.list_classes_for_student(student_id):
            for session in self._sessions.list_for_class(class_id, status=SessionStatus.ACTIVE):
                if not session.is_truly_active:
                    continue
                record = self._attendance.get(session.session_id, student_id)
                out.append(
                    StudentActiveSession(
                        session_id=session.session_id,
                        class_id=session.class_id,
                        teacher_id=session.teacher_id,
                        start_time=session.start_time,
                        location=session.location,
                        radius_meters=session.radius_meters,
                        attendance_status=record.status if record else AttendanceStatus.ABSENT,
                        has_attended=record is not None,
                    )
                )
        return out
