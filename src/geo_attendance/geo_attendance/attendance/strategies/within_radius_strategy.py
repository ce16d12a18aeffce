from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class WithinRadiusStrategy(AttendanceStrategy):
    """Check-in inside the geofence; checkout keeps the verified status."""

    def decide_checkin(self, *, distance_meters: float, radius_meters: float) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.VERIFIED,
            is_gps_verified=True,
            message="Check-in successful! Your attendance has been verified.",
        )

    def decide_checkout(self, *, current: AttendanceStatus, is_gps_verified: bool) -> StatusDecision:
        return StatusDecision(status=current, is_gps_verified=is_gps_verified, message="Checked out successfully")
