from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import AttendanceStatus, VerificationRequestStatus
from ..geo.geofence import GeoPoint


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance in one session.

    Only exists once the student checked in or a teacher marked them; a
    missing record means the student is absent.
    """

    session_id: str
    student_id: str
    class_id: str
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_in_location: Optional[GeoPoint] = None
    check_out_time: Optional[datetime] = None
    distance_meters: Optional[float] = None
    is_gps_verified: bool = False
    duration_minutes: Optional[int] = None
    manually_updated: bool = False
    manually_updated_by: Optional[str] = None
    verification_response_time: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    extension: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_checked_out(self) -> bool:
        return self.check_out_time is not None


@dataclass(frozen=True)
class VerificationRequest:
    """Teacher-issued request asking a checked-in student to re-send their location."""

    session_id: str
    student_id: str
    status: VerificationRequestStatus
    requested_by: str
    requested_at: datetime
    response_time: Optional[datetime] = None
    response_data: Dict[str, Any] = field(default_factory=dict)
    extension: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckInResult:
    record: AttendanceRecord
    is_within_radius: bool
    message: str


@dataclass(frozen=True)
class CheckOutResult:
    record: AttendanceRecord
    already_checked_out: bool
    message: str


@dataclass(frozen=True)
class VerificationOutcome:
    record: AttendanceRecord
    request: VerificationRequest
    verified: bool
    distance_meters: Optional[float] = None


@dataclass(frozen=True)
class LocationCheck:
    is_within_radius: bool
    distance_meters: float
    radius_meters: float
    unit: str = "meters"


@dataclass(frozen=True)
class OverrideResult:
    student_id: str
    status: AttendanceStatus
    record: Optional[AttendanceRecord]
    message: str


@dataclass(frozen=True)
class StudentAttendance:
    """Read-model: one student's status in a session (absent when no record)."""

    session_id: str
    student_id: str
    status: AttendanceStatus
    has_attended: bool
    record: Optional[AttendanceRecord] = None


@dataclass(frozen=True)
class SessionAttendanceSummary:
    """Read-model for the teacher's live roster of a session."""

    session_id: str
    class_id: str
    status: str
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    enrolled_student_count: int
    present_count: int
    verified: int
    failed: int
    early_checkout: int
    absent: int
    attendance_rate: float
    records: tuple = ()


@dataclass(frozen=True)
class SessionAttendanceStats:
    session_id: str
    status: str
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    attendance_count: int
    verified: int
    failed: int
    early_checkout: int
    absent: int
    attendance_rate: float


@dataclass(frozen=True)
class ClassAttendanceHistory:
    class_id: str
    total_sessions: int
    enrolled_student_count: int
    overall_attendance_rate: float
    overall_verified: int
    overall_failed: int
    overall_early_checkout: int
    overall_absent: int
    sessions: tuple = ()


@dataclass(frozen=True)
class StudentActiveSession:
    session_id: str
    class_id: str
    teacher_id: str
    start_time: Optional[datetime]
    location: GeoPoint
    radius_meters: float
    attendance_status: AttendanceStatus
    has_attended: bool
