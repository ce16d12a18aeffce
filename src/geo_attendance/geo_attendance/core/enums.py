from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle status of an attendance session."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


class AttendanceStatus(str, Enum):
    """Per-student attendance outcome stored on the attendance document.

    ABSENT is never persisted: a missing document means absent.
    """

    ABSENT = "absent"
    PENDING = "pending"
    CHECKED_IN = "checked_in"
    VERIFIED = "verified"
    FAILED_LOCATION = "failed_location"
    CHECKED_OUT_EARLY = "checked_out_early_before_verification"

    @property
    def is_unverified(self) -> bool:
        return self in UNVERIFIED_STATUSES


UNVERIFIED_STATUSES = frozenset({AttendanceStatus.PENDING, AttendanceStatus.CHECKED_IN})

# Statuses a teacher may set by hand.
OVERRIDE_STATUSES = frozenset(
    {
        AttendanceStatus.VERIFIED,
        AttendanceStatus.FAILED_LOCATION,
        AttendanceStatus.CHECKED_OUT_EARLY,
        AttendanceStatus.ABSENT,
    }
)

# Statuses counted as "present" in attendance summaries.
PRESENT_STATUSES = frozenset(
    {
        AttendanceStatus.VERIFIED,
        AttendanceStatus.FAILED_LOCATION,
        AttendanceStatus.CHECKED_OUT_EARLY,
    }
)


class VerificationRequestStatus(str, Enum):
    """Status of a teacher-issued location re-verification request."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
